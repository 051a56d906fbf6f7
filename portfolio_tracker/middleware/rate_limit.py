# portfolio_tracker/middleware/rate_limit.py
"""
Rate limiting for API protection.

The upstream market data source is itself rate limited, so endpoints that
call it get tighter limits than endpoints served from the store. Limits
are configured in services/constants.py.

Key by: Client IP address
Storage: In-memory (single-instance deployments)

Usage:
    from portfolio_tracker.middleware.rate_limit import limiter, RATE_LIMIT_MARKET_DATA

    @router.get("/quote/{ticker}")
    @limiter.limit(RATE_LIMIT_MARKET_DATA)
    async def get_quote(request: Request, ticker: str):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from portfolio_tracker.config import settings
from portfolio_tracker.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_MARKET_DATA,
    RATE_LIMIT_REFRESH,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

# Seconds suggested to clients in the Retry-After header
RETRY_AFTER_SECONDS = 60


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """
    429 response in the same shape as every other API error, with a
    Retry-After header.
    """
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": RETRY_AFTER_SECONDS},
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_MARKET_DATA",
    "RATE_LIMIT_REFRESH",
    "RATE_LIMIT_HEALTH",
]
