import re
from typing import Annotated, Any, Dict, List, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    value = value.lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


Name = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=255)]
Email = Annotated[str, BeforeValidator(_strip), Field(max_length=255), AfterValidator(_normalize_email)]


# =========================
# Auth requests
# =========================

class SignUpRequest(BaseModel):
    name: Name
    email: Email
    password: str = Field(min_length=6, max_length=128)
    role: Literal["user", "admin"] = "user"


class SignInRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


# =========================
# Responses
# =========================

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str


class AuthResponse(BaseModel):
    message: str
    user: UserOut


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    upTime: float


class ErrorResponse(BaseModel):
    error: str


class ValidationErrorResponse(BaseModel):
    error: str
    details: str


class GateErrorResponse(BaseModel):
    error: str
    message: str


def format_validation_error(errors: List[Dict[str, Any]]) -> str:
    """
    Flatten pydantic error entries into one human-readable line.
    """
    return ", ".join(error.get("msg", "Invalid value") for error in errors)
