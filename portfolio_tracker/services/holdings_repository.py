# portfolio_tracker/services/holdings_repository.py
"""
SQLAlchemy-backed holdings store.

Each operation opens its own short-lived session from the factory, so
concurrent refresh passes running in worker threads never share one.
Returned Holding objects are detached value objects, safe to use after
the session is closed.
"""

import logging
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_tracker.models import HoldingRecord
from portfolio_tracker.services.exceptions import HoldingNotFoundError
from portfolio_tracker.services.types import Holding, HoldingChanges, HoldingInput

logger = logging.getLogger(__name__)


class HoldingRepository:
    """
    Holding CRUD over the `holdings` table.

    Args:
        session_factory: Zero-argument callable returning a new Session
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def list(self) -> list[Holding]:
        with self._session_factory() as db:
            records = db.scalars(
                select(HoldingRecord).order_by(
                    HoldingRecord.created_at.desc(),
                    HoldingRecord.id.desc(),
                )
            ).all()
            return [_to_holding(r) for r in records]

    def get(self, holding_id: int) -> Holding:
        with self._session_factory() as db:
            record = db.get(HoldingRecord, holding_id)
            if record is None:
                raise HoldingNotFoundError(holding_id)
            return _to_holding(record)

    def create(self, data: HoldingInput) -> Holding:
        with self._session_factory() as db:
            record = HoldingRecord(
                ticker=data.ticker,
                quantity=data.quantity,
                cost_basis_per_unit=data.cost_basis_per_unit,
                purchase_date=data.purchase_date,
                owner=data.owner,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(
                f"Created holding {record.id}: {record.quantity} x {record.ticker} "
                f"for '{record.owner}'"
            )
            return _to_holding(record)

    def update(self, holding_id: int, changes: HoldingChanges) -> Holding:
        with self._session_factory() as db:
            record = db.get(HoldingRecord, holding_id)
            if record is None:
                raise HoldingNotFoundError(holding_id)

            for field_name, value in changes.as_dict().items():
                setattr(record, field_name, value)

            db.commit()
            db.refresh(record)
            logger.info(f"Updated holding {holding_id}: {sorted(changes.as_dict())}")
            return _to_holding(record)

    def delete(self, holding_id: int) -> None:
        with self._session_factory() as db:
            record = db.get(HoldingRecord, holding_id)
            if record is None:
                logger.debug(f"Delete of unknown holding {holding_id} ignored")
                return
            db.delete(record)
            db.commit()
            logger.info(f"Deleted holding {holding_id}")


def _to_holding(record: HoldingRecord) -> Holding:
    return Holding(
        id=record.id,
        ticker=record.ticker,
        quantity=record.quantity,
        cost_basis_per_unit=record.cost_basis_per_unit,
        purchase_date=record.purchase_date,
        owner=record.owner,
        created_at=record.created_at,
    )
