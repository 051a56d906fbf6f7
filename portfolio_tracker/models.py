# portfolio_tracker/models.py
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Integer, Numeric, CheckConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class HoldingRecord(Base):
    """
    One purchase lot.

    The same ticker may appear in several rows (several lots, or several
    owners); rows are never merged.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_holdings_quantity_positive"),
        CheckConstraint("cost_basis_per_unit >= 0", name="ck_holdings_cost_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    ticker: Mapped[str] = mapped_column(String(32), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    cost_basis_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    purchase_date: Mapped[date] = mapped_column(Date)
    owner: Mapped[str] = mapped_column(String(100), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
