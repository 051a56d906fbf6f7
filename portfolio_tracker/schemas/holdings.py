# portfolio_tracker/schemas/holdings.py
"""
Pydantic schemas for Holding validation.

These schemas define:
- What data clients must send (Create)
- What data clients can update (Update)
- What data the API returns (Response)

Validation layers:
- Field constraints: type, range, length
- Field validators: normalization (uppercase, trim)
- Controller: ticker must resolve to a quote before anything is stored
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.services.types import HoldingChanges, HoldingInput


def _normalize_ticker(v: str | None) -> str | None:
    return v.strip().upper() if v is not None else None


def _normalize_owner(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class HoldingCreate(BaseModel):
    """Schema for adding a holding."""

    ticker: str = Field(
        ...,
        min_length=1,
        max_length=32,
        examples=["RELIANCE.NS", "HDFCBANK.NS", "AAPL"],
        description="Exchange-qualified ticker symbol"
    )
    quantity: int = Field(
        ...,
        ge=1,
        description="Number of units bought"
    )
    cost_basis_per_unit: Decimal = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Average purchase price per unit"
    )
    purchase_date: date | None = Field(
        default=None,
        description="Purchase date (defaults to today)"
    )
    owner: str | None = Field(
        default=None,
        max_length=100,
        description="Owner label (defaults to 'Default User')"
    )

    @field_validator('ticker')
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        """Normalize ticker: uppercase, trim whitespace."""
        v = _normalize_ticker(v)
        if not v:
            raise ValueError("Ticker cannot be blank")
        return v

    @field_validator('owner')
    @classmethod
    def normalize_owner(cls, v: str | None) -> str | None:
        return _normalize_owner(v)

    def to_input(self) -> HoldingInput:
        return HoldingInput(
            ticker=self.ticker,
            quantity=self.quantity,
            cost_basis_per_unit=self.cost_basis_per_unit,
            purchase_date=self.purchase_date or date.today(),
            owner=self.owner,
        )


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class HoldingUpdate(BaseModel):
    """
    Schema for editing a holding.

    All fields are optional: the client only sends fields to change.
    A changed ticker is validated against the quote source again.
    """

    ticker: str | None = Field(
        default=None,
        min_length=1,
        max_length=32,
        description="New ticker symbol"
    )
    quantity: int | None = Field(
        default=None,
        ge=1,
        description="New quantity"
    )
    cost_basis_per_unit: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="New average purchase price per unit"
    )
    purchase_date: date | None = Field(
        default=None,
        description="New purchase date"
    )
    owner: str | None = Field(
        default=None,
        max_length=100,
        description="New owner label (blank resets to the default owner)"
    )

    @field_validator('ticker')
    @classmethod
    def normalize_ticker(cls, v: str | None) -> str | None:
        v = _normalize_ticker(v)
        if v is not None and not v:
            raise ValueError("Ticker cannot be blank")
        return v

    @field_validator('owner')
    @classmethod
    def normalize_owner(cls, v: str | None) -> str | None:
        # blank is kept as "" so it can reset to the default owner
        return v.strip() if v is not None else None

    def to_changes(self) -> HoldingChanges:
        return HoldingChanges(
            ticker=self.ticker,
            quantity=self.quantity,
            cost_basis_per_unit=self.cost_basis_per_unit,
            purchase_date=self.purchase_date,
            owner=self.owner,
        )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class HoldingResponse(BaseModel):
    """Schema for holding data returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ticker: str
    quantity: int
    cost_basis_per_unit: Decimal
    purchase_date: date
    owner: str
    created_at: datetime | None = None


class MessageResponse(BaseModel):
    message: str
