# portfolio_tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- The SQLAlchemy repository satisfies HoldingStore without inheriting it
- Test fakes work without explicit inheritance
"""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_tracker.services.types import Holding, HoldingChanges, HoldingInput


class HoldingStore(Protocol):
    """Persistence interface required by RefreshController."""

    def list(self) -> list[Holding]:
        """All holdings, most recently created first."""
        ...

    def create(self, data: HoldingInput) -> Holding:
        ...

    def update(self, holding_id: int, changes: HoldingChanges) -> Holding:
        """Raises HoldingNotFoundError for an unknown id."""
        ...

    def get(self, holding_id: int) -> Holding:
        """Raises HoldingNotFoundError for an unknown id."""
        ...

    def delete(self, holding_id: int) -> None:
        """Deleting an unknown id is a no-op."""
        ...
