import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

from config import settings

logger = logging.getLogger("acquisitions.http")

CallNext = Callable[[Request], Awaitable[Response]]


# ======================================================
# Browser security headers
# ======================================================

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"


async def security_headers_middleware(request: Request, call_next: CallNext) -> Response:
    response = await call_next(request)

    for k, v in SECURITY_HEADERS.items():
        response.headers.setdefault(k, v)

    if settings.is_production:
        response.headers.setdefault("Strict-Transport-Security", HSTS_VALUE)

    return response


# ======================================================
# Access log
# ======================================================

def normalize_path(path: str) -> str:
    """
    Deterministic canonical path for access logs.
    """
    return "/" + "/".join(
        ":id" if segment.isdigit() else segment
        for segment in path.split("/")
        if segment
    )


async def access_log_middleware(request: Request, call_next: CallNext) -> Response:
    start_time = time.monotonic()
    response = await call_next(request)
    latency_ms = (time.monotonic() - start_time) * 1000

    logger.info(
        f"{request.method} {normalize_path(request.url.path)} {response.status_code} {latency_ms:.1f} ms"
    )
    return response
