"""Bill Tracker - multi-tenant bill tracking API."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.errors import AppError, StorageError, ValidationFailed
from app.rate_limit import limiter
from app.routers import auth_router, bills_router, health_router
from app.schemas.common import ErrorResponse, FieldErrorResponse
from app.services.notification import BillNotifier

# Logging
logger = logging.getLogger("bill_tracker")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the notifier on startup and close it on shutdown."""
    for warning in settings.validate():
        logger.warning("CONFIG %s", warning)

    notifier = BillNotifier.from_settings(settings)
    if not notifier.verify_connection():
        logger.warning("Email delivery unavailable - bill notifications will fail until SMTP is reachable")
    app.state.notifier = notifier
    logger.info("Bill Tracker started (env=%s)", settings.APP_ENV)
    try:
        yield
    finally:
        notifier.close()


app = FastAPI(title="Bill Tracker", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 1024 * 1024  # 1MB, JSON bodies only

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"success": False, "message": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {"/api/v1/bills", "/api/v1/auth/login"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Log mutating operations
        path = request.url.path
        method = request.method
        if method in ("POST", "PATCH", "DELETE") and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

# API routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(bills_router)


def error_response(status_code: int, message: str, errors: list[FieldErrorResponse] | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# --- Application errors ---
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors into the error envelope."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    errors = None
    if isinstance(exc, ValidationFailed):
        errors = [FieldErrorResponse(**e.to_dict()) for e in exc.errors]
    return error_response(exc.status_code, exc.message, errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters become a 400 with per-field messages."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part not in ("body", "query", "path")]
        errors.append(FieldErrorResponse(field=".".join(loc) or "body", message=err["msg"]))
    return error_response(400, "Validation error", errors)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Any storage fault that escaped the services."""
    logger.error("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(StorageError.status_code, StorageError.message)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return error_response(429, "Rate limit exceeded. Try again later.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and other framework-level HTTP errors."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, message)
