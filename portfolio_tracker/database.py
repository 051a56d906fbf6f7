# portfolio_tracker/database.py
"""
Holdings store engine and session factory.

Store calls run in worker threads (asyncio.to_thread), so SQLite
connections are opened with check_same_thread=False. An in-memory SQLite
database only exists inside a single connection, hence StaticPool for it.
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _create_engine(url: str) -> Engine:
    if not settings.is_sqlite:
        logger.info("Using pooled database connection")
        return create_engine(url, pool_pre_ping=True, pool_timeout=30, echo=settings.debug)

    options: dict = {"connect_args": {"check_same_thread": False}, "echo": settings.debug}
    if ":memory:" in url or url.rstrip("/") == "sqlite:":
        options["poolclass"] = StaticPool
    logger.info(f"Using SQLite holdings store ({url})")
    return create_engine(url, **options)


engine = _create_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create the holdings table if it does not exist yet."""
    Base.metadata.create_all(bind=engine)


def check_database_health() -> dict:
    """Run SELECT 1 against the store; never raises."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Holdings store unreachable: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "database": engine.dialect.name}
