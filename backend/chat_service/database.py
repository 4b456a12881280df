"""
Database connection and session management.
Handles SQLAlchemy setup, connection pooling, and session lifecycle.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options(dsn: str) -> Dict[str, Any]:
    """
    Pool settings per backend.
    - SQLite: single-file dev database, connections shared across threads
    - Others: QueuePool with pre-ping and recycle to heal stale connections
    """
    if dsn.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


# ---- Engine ----
engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    echo=settings.SQL_ECHO,
    **_engine_options(settings.DATABASE_URL),
)

# ---- Session factory ----
# expire_on_commit=False keeps attributes accessible after repo commits
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    future=True,
)


@contextmanager
def get_db_context(session_factory=None) -> Generator[Session, None, None]:
    """
    Unit of work for repositories and scripts.
    - On normal exit: commits.
    - On exception: rollbacks and re-raises.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.error(f"Database context error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def redacted_dsn(dsn: str) -> str:
    """
    Redact password in a DATABASE_URL for safe logging.
    """
    try:
        url = make_url(dsn)
        return url.render_as_string(hide_password=True)
    except Exception:
        return "<unparsable DSN>"


def log_database_target() -> None:
    """Log which database the service is configured against. Safe at startup."""
    logger.warning(f"DB configured -> dsn={redacted_dsn(settings.DATABASE_URL)} | dialect={engine.dialect.name}")
