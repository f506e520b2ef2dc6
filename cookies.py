from typing import Any, Dict, Optional

from fastapi import Request, Response

from config import settings

TOKEN_COOKIE = "token"


def cookie_options() -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "max_age": settings.COOKIE_MAX_AGE_SECONDS,
    }


def set_cookie(response: Response, name: str, value: str, **overrides: Any) -> None:
    response.set_cookie(name, value, **{**cookie_options(), **overrides})


def clear_cookie(response: Response, name: str, **overrides: Any) -> None:
    options = {**cookie_options(), **overrides}
    # delete_cookie always expires immediately
    options.pop("max_age", None)
    response.delete_cookie(name, **options)


def get_cookie(request: Request, name: str) -> Optional[str]:
    return request.cookies.get(name)
