import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from auth_routes import router as auth_router
from classifier import build_classifier
from config import gate_config, settings
from db import init_db
from gate import RequestGate
from http_middleware import access_log_middleware, security_headers_middleware
from identity import identity_middleware
from redis_client import redis_client
from schemas import HealthResponse, ValidationErrorResponse, format_validation_error


# ======================================================
# App Setup
# ======================================================

app = FastAPI(title="Acquisitions API")

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger("acquisitions")

START_TIME = time.monotonic()


# ======================================================
# Middleware chain
# ======================================================
# Starlette wraps each added middleware around the previous ones, so the
# last one registered runs first:
#   security headers -> CORS -> access log -> identity -> gate -> router

gate = RequestGate(
    config=gate_config,
    classifier=build_classifier(settings, gate_config, redis_client),
)

app.middleware("http")(gate)
app.middleware("http")(identity_middleware)
app.middleware("http")(access_log_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(security_headers_middleware)


# ======================================================
# Startup / Shutdown
# ======================================================

@app.on_event("startup")
async def startup():
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables ensured")


@app.on_event("shutdown")
async def shutdown():
    aclose = getattr(gate.classifier, "aclose", None)
    if aclose is not None:
        await aclose()
    await redis_client.aclose()


# ======================================================
# Error handlers
# ======================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationErrorResponse(
            error="Validation failed",
            details=format_validation_error(exc.errors()),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ======================================================
# Routes
# ======================================================

@app.get("/", response_class=PlainTextResponse)
def root():
    logger.info("Hello from acquisitions")
    return "Hello from acquisitions"


@app.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        upTime=time.monotonic() - START_TIME,
    )


@app.get("/api", response_class=PlainTextResponse)
def api_root():
    return "Acquisition api is running"


app.include_router(auth_router)
