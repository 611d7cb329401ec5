"""
Rate Limiting Configuration

Uses SlowAPI with in-memory storage, keyed by client IP.
Configurable via environment variables.
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from secondhand.core.config import settings

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Get client IP, respecting X-Forwarded-For for proxied requests.
    Falls back to direct IP if header not present.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# For multi-instance deployments pass storage_uri=settings.REDIS_URL
limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render rate limit errors in the API's {"error": ...} shape with Retry-After."""
    logger.warning(
        f"Rate limit exceeded: {get_client_ip(request)} on {request.url.path}"
    )

    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={"error": f"Too many requests. Please try again later ({retry_after})."},
        headers={"Retry-After": "60"},
    )


def get_auth_limit():
    """Rate limit for signup (stricter)."""
    return limiter.limit(settings.RATE_LIMIT_AUTH)


def get_checkout_limit():
    """Rate limit for checkout."""
    return limiter.limit(settings.RATE_LIMIT_CHECKOUT)
