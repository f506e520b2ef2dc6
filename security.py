import time
from typing import Any, Dict

import bcrypt
import jwt

from config import settings

JWT_ALGORITHM = "HS256"

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


# =========================
# PASSWORD HASHING
# =========================

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.
    Raw passwords are NEVER stored or logged.
    """
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# =========================
# TOKENS
# =========================

def sign_token(payload: Dict[str, Any]) -> str:
    claims = dict(payload)
    claims["exp"] = int(time.time()) + settings.JWT_EXPIRES_IN_SECONDS
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a token.
    Raises jwt.InvalidTokenError when the token is expired, tampered or malformed.
    """
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
