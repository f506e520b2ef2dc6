import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import User
from security import hash_password, verify_password

logger = logging.getLogger("acquisitions.auth")


class AuthError(Exception):
    pass


class UserAlreadyExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Callers must not tell them apart."""


def get_user_by_email(db: Session, email: str):
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(db: Session, *, name: str, email: str, password: str, role: str = "user") -> User:
    if get_user_by_email(db, email) is not None:
        raise UserAlreadyExistsError("User with this email already exists")

    user = User(
        name=name,
        email=email,
        password=hash_password(password),
        role=role,
    )
    db.add(user)

    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent sign-up for the same email
        db.rollback()
        raise UserAlreadyExistsError("User with this email already exists") from e

    db.refresh(user)
    logger.info(f"User {user.email} created successfully")
    return user


def authenticate_user(db: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise InvalidCredentialsError("User not found")

    if not verify_password(password, user.password):
        raise InvalidCredentialsError("Invalid password")

    return user
