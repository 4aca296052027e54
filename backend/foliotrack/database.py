# backend/foliotrack/database.py
"""
Database connection and session management for the holdings store.

This module configures SQLAlchemy with:
- StaticPool for in-memory SQLite (tests) so every session sees one database
- A regular engine for file-based SQLite or any other SQLAlchemy URL

Usage:
    from foliotrack.database import SessionLocal, init_db

    init_db()
    store = HoldingsStore(SessionLocal)
"""

import logging

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foliotrack.config import settings
from foliotrack.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """
    Create SQLAlchemy engine with URL-appropriate configuration.

    Args:
        database_url: Connection string. Defaults to settings.database_url.
        echo: Echo SQL. Defaults to settings.debug.

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    url = database_url or settings.database_url
    echo = settings.debug if echo is None else echo

    if url.lower().startswith("sqlite://"):
        if ":memory:" in url:
            logger.info("Configuring in-memory SQLite database")
            return create_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=echo,
            )
        logger.info(f"Configuring SQLite database at {url}")
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    logger.info("Configuring database engine")
    return create_engine(url, pool_pre_ping=True, echo=echo)


# Create engine and session factory
engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create the holdings table if it does not exist."""
    Base.metadata.create_all(bind or engine)
