import logging
from typing import Awaitable, Callable, List, Optional

import jwt
from fastapi import Request, Response
from pydantic import BaseModel, ConfigDict, ValidationError

from cookies import TOKEN_COOKIE, get_cookie
from decision import Role
from security import verify_token

logger = logging.getLogger("acquisitions.identity")


class AuthenticatedUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role


def extract_tokens(request: Request) -> List[str]:
    """
    Candidate session tokens: the cookie first, then a Bearer header.
    """
    tokens = []

    token = get_cookie(request, TOKEN_COOKIE)
    if token:
        tokens.append(token)

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        tokens.append(credentials.strip())

    return tokens


def authenticate(request: Request) -> Optional[AuthenticatedUser]:
    for token in extract_tokens(request):
        try:
            claims = verify_token(token)
            return AuthenticatedUser.model_validate(claims)
        except (jwt.InvalidTokenError, ValidationError) as e:
            logger.debug(f"Ignoring invalid session token: {type(e).__name__}")

    return None


async def identity_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Attach the authenticated caller (or None) to request.state.user.
    Never rejects: unauthenticated callers continue as guests.
    """
    request.state.user = authenticate(request)
    return await call_next(request)
