# portfolio_tracker/services/exceptions.py
"""
Service layer exceptions.

Raised by the resolvers, the repository and the refresh controller. None of
them know about HTTP; main.py maps each class to a status code.

    ServiceError
    ├── ValidationError            input refused before any upstream call
    │   ├── InvalidRangeError
    │   └── InvalidTickerError
    ├── NotFoundError
    │   └── HoldingNotFoundError
    └── MarketDataError            upstream failures
        ├── ProviderUnavailableError
        ├── TickerNotFoundError
        ├── RateLimitError
        └── QuoteUnavailableError
"""


class ServiceError(Exception):
    """Root of every error this package raises on purpose."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(ServiceError):
    """
    Bad input: blank ticker, non-positive quantity, negative cost, ...

    Attributes:
        field: Offending field name, when there is one
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidRangeError(ValidationError):
    """History range not in the supported set."""

    def __init__(self, value: str, valid_options: list[str]) -> None:
        self.value = value
        self.valid_options = valid_options
        super().__init__(
            f"Unsupported range '{value}' (expected one of: {', '.join(valid_options)})",
            field="range",
        )


class InvalidTickerError(ValidationError):
    """
    A holding write refused because no quote strategy could price its ticker.

    Nothing is persisted when this is raised.
    """

    def __init__(self, ticker: str) -> None:
        self.ticker = ticker
        super().__init__(f"'{ticker}' did not resolve to a quote", field="ticker")


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(ServiceError):
    """
    Lookup of a stored resource by id failed.

    Attributes:
        resource_type: e.g. "Holding"
        resource_id: The id that was looked up
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class HoldingNotFoundError(NotFoundError):

    def __init__(self, holding_id: int) -> None:
        self.holding_id = holding_id
        super().__init__(
            f"No holding with id {holding_id}",
            resource_type="Holding",
            resource_id=holding_id,
        )


# =============================================================================
# UPSTREAM
# =============================================================================


class MarketDataError(ServiceError):
    """
    The upstream market data source failed.

    Attributes:
        provider: Provider name, when known
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """Transient upstream failure: network, 5xx, empty or malformed payload. Retried."""

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"{provider} request failed: {reason}", provider=provider)


class TickerNotFoundError(MarketDataError):
    """The upstream has no data for this symbol. Never retried."""

    def __init__(self, ticker: str, provider: str) -> None:
        self.ticker = ticker
        super().__init__(f"{provider} has no data for '{ticker}'", provider=provider)


class RateLimitError(MarketDataError):
    """
    Upstream throttling. Retried with backoff.

    Attributes:
        retry_after: Seconds the upstream asked us to wait, if it said
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        message = f"{provider} is rate limiting requests"
        if retry_after:
            message += f"; retry after {retry_after}s"
        super().__init__(message, provider=provider)


class QuoteUnavailableError(MarketDataError):
    """
    Every quote strategy failed for a ticker.

    Attributes:
        ticker: The ticker that could not be priced
        reasons: Failure reason per strategy, in the order they were tried
    """

    def __init__(self, ticker: str, reasons: dict[str, str] | None = None) -> None:
        self.ticker = ticker
        self.reasons = reasons or {}
        message = f"No quote available for '{ticker}'"
        if self.reasons:
            message += " (" + "; ".join(f"{step}: {why}" for step, why in self.reasons.items()) + ")"
        super().__init__(message)


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidRangeError",
    "InvalidTickerError",
    "NotFoundError",
    "HoldingNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "QuoteUnavailableError",
]
