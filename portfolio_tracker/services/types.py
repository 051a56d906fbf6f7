# portfolio_tracker/services/types.py
"""
Domain records shared across the service layer.

These dataclasses are NOT Pydantic schemas - those live in
portfolio_tracker/schemas/ for API serialization.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL financial values (never float)
- Validation at construction: an instance that exists is valid

Types:
    Holding          - One persisted purchase lot
    HoldingInput     - Fields for a new holding (not yet persisted)
    HoldingChanges   - Partial update for an existing holding
    Quote            - A resolved current price (never persisted)
    HistoricalPoint  - One (date, close) observation for one ticker
    TickerCandidate  - One ticker search result
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from portfolio_tracker.config import settings
from portfolio_tracker.services.exceptions import ValidationError


# =============================================================================
# NORMALIZERS
# =============================================================================

def normalize_ticker(ticker: str) -> str:
    """Canonical ticker form: trimmed, upper case, non-empty."""
    if not isinstance(ticker, str) or not ticker.strip():
        raise ValidationError("Ticker is required", field="ticker")
    return ticker.strip().upper()


def normalize_owner(owner: str | None) -> str:
    """Trimmed owner label; blank or missing becomes the default owner."""
    if owner is None or not owner.strip():
        return settings.default_owner
    return owner.strip()


def _validate_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number", field="quantity")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity")
    return quantity


def _validate_cost(cost: Decimal) -> Decimal:
    try:
        cost = Decimal(str(cost))
    except ArithmeticError:
        raise ValidationError("Cost basis must be a number", field="cost_basis_per_unit")
    if not cost.is_finite() or cost < 0:
        raise ValidationError("Cost basis cannot be negative", field="cost_basis_per_unit")
    return cost


# =============================================================================
# HOLDINGS
# =============================================================================

@dataclass(frozen=True)
class Holding:
    """
    One purchase lot as stored by the holdings store.

    Attributes:
        id: Store-assigned identifier
        ticker: Exchange-qualified symbol, upper case (e.g. "RELIANCE.NS")
        quantity: Units held (>= 1)
        cost_basis_per_unit: Purchase price per unit (>= 0)
        purchase_date: Date of purchase
        owner: Owner label
        created_at: When the holding was first stored
    """

    id: int
    ticker: str
    quantity: int
    cost_basis_per_unit: Decimal
    purchase_date: date
    owner: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class HoldingInput:
    """
    Validated fields for a new holding.

    Construction normalizes the ticker and owner and raises ValidationError
    for out-of-range values, so nothing invalid reaches the upstream or
    the store.
    """

    ticker: str
    quantity: int
    cost_basis_per_unit: Decimal
    purchase_date: date = field(default_factory=date.today)
    owner: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", normalize_ticker(self.ticker))
        object.__setattr__(self, "quantity", _validate_quantity(self.quantity))
        object.__setattr__(self, "cost_basis_per_unit", _validate_cost(self.cost_basis_per_unit))
        object.__setattr__(self, "owner", normalize_owner(self.owner))
        if self.purchase_date is None:
            object.__setattr__(self, "purchase_date", date.today())


@dataclass(frozen=True)
class HoldingChanges:
    """
    Partial update for a holding. Fields left as None are not changed.
    """

    ticker: str | None = None
    quantity: int | None = None
    cost_basis_per_unit: Decimal | None = None
    purchase_date: date | None = None
    owner: str | None = None

    def __post_init__(self) -> None:
        if self.ticker is not None:
            object.__setattr__(self, "ticker", normalize_ticker(self.ticker))
        if self.quantity is not None:
            object.__setattr__(self, "quantity", _validate_quantity(self.quantity))
        if self.cost_basis_per_unit is not None:
            object.__setattr__(self, "cost_basis_per_unit", _validate_cost(self.cost_basis_per_unit))
        if self.owner is not None:
            object.__setattr__(self, "owner", normalize_owner(self.owner))

    def as_dict(self) -> dict[str, Any]:
        """Only the fields that were set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()


# =============================================================================
# MARKET DATA
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """
    A resolved current price for one ticker.

    Attributes:
        ticker: Symbol the quote was resolved for
        current_price: Latest price, always finite and positive
        previous_close: Prior session close, None when the upstream had none
        display_name: Instrument name, or the ticker when no name was returned
        source: Name of the fallback step that produced this quote
    """

    ticker: str
    current_price: Decimal
    previous_close: Decimal | None = None
    display_name: str = ""
    source: str = ""

    def __post_init__(self) -> None:
        if not self.current_price.is_finite() or self.current_price <= 0:
            raise ValueError(f"current_price must be positive, got {self.current_price}")
        if not self.display_name:
            object.__setattr__(self, "display_name", self.ticker)

    @property
    def day_change(self) -> Decimal:
        """Per-unit change since the previous close; zero when it is unknown."""
        if self.previous_close is None:
            return Decimal("0")
        return self.current_price - self.previous_close


@dataclass(frozen=True)
class HistoricalPoint:
    """One daily close for one ticker."""

    date: date
    close: Decimal


@dataclass(frozen=True)
class TickerCandidate:
    """
    One tradable search result.

    Attributes:
        symbol: Exchange-qualified symbol
        display_name: Short or long instrument name (falls back to symbol)
        exchange: Upstream exchange code (e.g. "NSI"), if provided
        quote_type: Instrument type ("EQUITY" or "ETF")
    """

    symbol: str
    display_name: str
    exchange: str | None
    quote_type: str
