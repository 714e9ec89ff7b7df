"""
Rate Limiting for AchievR API
=============================
Implements rate limiting using slowapi with in-process memory storage.

Only the public verification endpoints are limited: they are unauthenticated
and each call writes a verification history row.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """
    Rate limit key for verification requests.

    Verifiers are mostly anonymous (employers scanning a QR code), so the
    client IP is the key. Behind a proxy the first X-Forwarded-For hop wins.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri="memory://",
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.

    Returns the standard error envelope plus a Retry-After header.
    """
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many verification requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": "60"},
    )


def verify_rate_limit():
    """Rate limit for public certificate verification"""
    return limiter.limit(settings.VERIFY_RATE_LIMIT, key_func=get_client_identifier)
