import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth_service import InvalidCredentialsError, UserAlreadyExistsError, authenticate_user, create_user
from cookies import TOKEN_COOKIE, clear_cookie, set_cookie
from db import get_db
from models import User
from schemas import AuthResponse, ErrorResponse, MessageResponse, SignInRequest, SignUpRequest, UserOut
from security import sign_token

logger = logging.getLogger("acquisitions.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _issue_session(response: JSONResponse, user: User) -> None:
    token = sign_token({"id": user.id, "email": user.email, "role": user.role})
    set_cookie(response, TOKEN_COOKIE, token)


@router.post(
    "/sign-up",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    responses={409: {"model": ErrorResponse}},
)
def sign_up(body: SignUpRequest, db: Session = Depends(get_db)):
    try:
        user = create_user(db, name=body.name, email=body.email, password=body.password, role=body.role)
    except UserAlreadyExistsError:
        logger.warning(f"Sign up rejected, email already registered: {body.email}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": "Email already exists"})

    payload = AuthResponse(message="User registered", user=UserOut.model_validate(user))
    response = JSONResponse(status_code=status.HTTP_201_CREATED, content=payload.model_dump())
    _issue_session(response, user)

    logger.info(f"User registered successfully: {user.email}")
    return response


@router.post(
    "/sign-in",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}},
)
def sign_in(body: SignInRequest, db: Session = Depends(get_db)):
    try:
        user = authenticate_user(db, email=body.email, password=body.password)
    except InvalidCredentialsError as e:
        logger.warning(f"Sign in failed for {body.email}: {e}")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Invalid email or password"})

    payload = AuthResponse(message="User signed in", user=UserOut.model_validate(user))
    response = JSONResponse(status_code=status.HTTP_200_OK, content=payload.model_dump())
    _issue_session(response, user)

    logger.info(f"User signed in successfully: {user.email}")
    return response


@router.post("/sign-out", response_model=MessageResponse)
def sign_out():
    response = JSONResponse(status_code=status.HTTP_200_OK, content={"message": "User signed out successfully"})
    clear_cookie(response, TOKEN_COOKIE)

    logger.info("User signed out successfully")
    return response
