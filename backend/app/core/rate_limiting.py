"""Per-client throttling of the code endpoints using slowapi.

This is the outer of two limits. slowapi caps how often one client address
may call the request/verify endpoints; CredentialRateLimiter caps how many
live codes one email address may hold, whichever clients asked for them.

The code endpoints run before anyone has a session, so the client address
is the only usable key.

Usage in routers:
    @router.post("/signup/request")
    @limiter.limit(lambda: settings.rate_limit_code_request)
    async def request_signup_code(request: Request, ...):
        ...
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.responses import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

_FALLBACK_RETRY_AFTER = 60

# In-memory storage: counters are per process and reset on restart.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the window that overflowed, e.g. 3600 for "5/hour"."""
    try:
        return int(exc.limit.limit.get_expiry())
    except (AttributeError, TypeError, ValueError):
        return _FALLBACK_RETRY_AFTER


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render slowapi overflow as 429 RATE_LIMITED with Retry-After."""
    logger.info(
        "Throttled %s from %s (%s)",
        request.url.path,
        get_remote_address(request),
        exc.detail,
    )
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="RATE_LIMITED",
                message="Too many requests. Please try again later.",
            )
        ).model_dump(),
        headers={"Retry-After": str(_retry_after_seconds(exc))},
    )
