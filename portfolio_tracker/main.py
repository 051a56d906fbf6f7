# portfolio_tracker/main.py
"""
FastAPI application entry point.

Wires together:
- logging (configured before anything else logs)
- the lifespan: holdings table creation and the background refresh loop
- middleware: CORS, slowapi rate limiting, correlation IDs
- error mapping: service exceptions -> ErrorDetail JSON with a status code
- routers and the health endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from portfolio_tracker import __version__
from portfolio_tracker.config import settings
from portfolio_tracker.database import check_database_health, init_db
from portfolio_tracker.dependencies import get_refresh_controller
from portfolio_tracker.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from portfolio_tracker.routers import (
    holdings_router,
    market_data_router,
    portfolio_router,
)
from portfolio_tracker.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidRangeError,
    InvalidTickerError,
    NotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    QuoteUnavailableError,
)
from portfolio_tracker.utils import setup_logging

logger = logging.getLogger(__name__)

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the holdings table, then keep the refresh loop alive until shutdown."""
    init_db()
    controller = get_refresh_controller()

    if settings.auto_refresh_enabled:
        await controller.start()
    else:
        logger.info(f"Background refresh disabled (environment={settings.environment})")

    try:
        yield
    finally:
        await controller.stop()


app = FastAPI(
    title=settings.app_name,
    description="Stock holdings tracker: live quotes, ticker search and portfolio value history",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================
# Starlette runs the last-added middleware first: correlation IDs wrap
# everything, including rate limit rejections.

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# ERROR MAPPING
# =============================================================================

def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(error=error, message=message, details=details).model_dump(),
        headers=headers,
    )


def _retry_after_headers(exc: RateLimitError) -> dict[str, str] | None:
    return {"Retry-After": str(exc.retry_after)} if exc.retry_after else None


# Most specific class first. Each entry: status code, details builder,
# and optionally a headers builder.
_SERVICE_ERRORS: list[tuple[type[ServiceError], int, Callable[[Any], dict | None], Callable[[Any], dict | None] | None]] = [
    (NotFoundError, 404,
     lambda e: {"resource_type": e.resource_type, "resource_id": e.resource_id}, None),
    (InvalidTickerError, 400, lambda e: {"ticker": e.ticker}, None),
    (InvalidRangeError, 400, lambda e: {"range": e.value, "valid_options": e.valid_options}, None),
    (ValidationError, 400, lambda e: {"field": e.field} if e.field else None, None),
    (QuoteUnavailableError, 404, lambda e: {"ticker": e.ticker, "attempts": e.reasons}, None),
    (TickerNotFoundError, 404, lambda e: {"ticker": e.ticker}, None),
    (ProviderUnavailableError, 503, lambda e: {"provider": e.provider}, None),
    (RateLimitError, 429,
     lambda e: {"retry_after": e.retry_after} if e.retry_after else None, _retry_after_headers),
    (MarketDataError, 502, lambda e: None, None),
    (ServiceError, 500, lambda e: None, None),
]


def _service_error_handler(
        status_code: int,
        build_details: Callable[[Any], dict | None],
        build_headers: Callable[[Any], dict | None] | None,
):
    async def handler(request: Request, exc: ServiceError) -> JSONResponse:
        log = logger.error if status_code >= 500 else logger.warning
        log(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc}")
        return _error_response(
            status_code,
            type(exc).__name__,
            str(exc),
            details=build_details(exc),
            headers=build_headers(exc) if build_headers else None,
        )

    return handler


for _exc_class, _status_code, _details, _headers in _SERVICE_ERRORS:
    app.add_exception_handler(_exc_class, _service_error_handler(_status_code, _details, _headers))

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

_HTTP_ERROR_NAMES = {
    400: "BadRequestError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
    422: "ValidationError",
    429: "RateLimitError",
    503: "ServiceUnavailableError",
}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Reshape FastAPI's {"detail": ...} body into ErrorDetail."""
    return _error_response(
        exc.status_code,
        _HTTP_ERROR_NAMES.get(exc.status_code, "HTTPError"),
        str(exc.detail) if exc.detail else "An error occurred",
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with one entry per invalid field."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(details=details).model_dump(),
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(holdings_router)  # /api/holdings
app.include_router(market_data_router)  # /api/quote, /api/history, /api/search
app.include_router(portfolio_router)  # /api/portfolio


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    return {
        "message": f"Welcome to {settings.app_name}!",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Holdings store connectivity plus the refresh loop's last pass.

    Returns 503 only when the store is unreachable; a stale or failing
    refresh loop is reported but does not fail the check.
    """
    database = check_database_health()
    body = {
        "status": database["status"],
        "checks": {
            "database": database,
            "refresh": get_refresh_controller().health(),
        },
    }
    status_code = 200 if database["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=body)


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Liveness probe: 200 while the process is up."""
    return {"status": "alive"}
