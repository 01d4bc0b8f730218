"""FastAPI application entry point.

Builds the app: security headers and CORS, the error envelope handlers,
the /api/v1 routers, /health, and a lifespan that runs the expiry sweeper
and closes the database pool on shutdown.

Run with: uvicorn app.main:app
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.database import async_session_factory, dispose_engine
from app.core.errors import APIError, InternalError
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.core.responses import ErrorDetail, ErrorResponse
from app.services.expiry_sweeper import ExpirySweeper

logger = structlog.get_logger()

# The API serves JSON only: nothing may frame it or load resources from it.
_SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cross-Origin-Resource-Policy": "same-origin",
}
_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Static security headers; no-store on /api/; HSTS in production only."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(_SECURITY_HEADERS)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = _HSTS
        return response


def _error_response(
    status_code: int, code: str, message: str, details: list[dict] | None = None
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, exc.message, exc.details)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body/path/query validation failures become 400 VALIDATION_ERROR."""
    details = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return _error_response(
        400, "VALIDATION_ERROR", "Request validation failed", details
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; answer with a generic 500."""
    logger.exception("unhandled_exception", exc_info=exc, path=request.url.path)
    fallback = InternalError()
    return _error_response(fallback.status_code, fallback.code, fallback.message)


def register_exception_handlers(app: FastAPI) -> None:
    # Specific handlers first, catch-all last.
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)


def build_sweeper() -> ExpirySweeper:
    return ExpirySweeper(
        async_session_factory,
        interval_seconds=settings.sweep_interval_seconds,
        grace=timedelta(minutes=settings.sweep_grace_minutes),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the expiry sweeper (if enabled); stop it and the pool on exit."""
    sweeper = build_sweeper() if settings.sweep_enabled else None
    app.state.sweeper = sweeper
    if sweeper is not None:
        sweeper.start()
    logger.info(
        "app_started",
        environment=settings.environment,
        sweep_enabled=sweeper is not None,
    )
    try:
        yield
    finally:
        if sweeper is not None:
            await sweeper.stop()
        await dispose_engine()
        logger.info("app_stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="CUET Sphere API",
        version="1.0.0",
        description="One-time code verification and notifications",
        lifespan=lifespan,
    )

    # Starlette runs middleware in reverse order of registration; CORS is
    # outermost so preflights never reach the header middleware.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    register_exception_handlers(app)
    app.state.limiter = limiter
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe."""
        return {"status": "healthy"}

    return app


app = create_app()
