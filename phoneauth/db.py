"""
Database configuration with lazy initialization.

The engine is created on first access so the app can import (and answer
/healthz) before the database is reachable.
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool

from .core.config import settings

logger = logging.getLogger(__name__)

# Global engine instance (lazily initialized)
_engine = None
_SessionLocal = None

Base = declarative_base()


def get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        database_url = settings.DATABASE_URL
        db_url_safe = database_url[:30] + "..." if len(database_url) > 30 else database_url
        logger.info(f"[DB] Creating database engine for: {db_url_safe}")

        if database_url.startswith("sqlite"):
            # SQLite: minimal pooling for dev
            _engine = create_engine(
                database_url,
                poolclass=QueuePool,
                pool_size=5,
                max_overflow=0,
                connect_args={"check_same_thread": False},
            )
        else:
            _engine = create_engine(
                database_url,
                poolclass=QueuePool,
                pool_size=20,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
    return _engine


def get_session_local():
    """Get or create the SessionLocal class."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db():
    """
    Dependency that provides a database session.
    Used by FastAPI's dependency injection.
    """
    session_class = get_session_local()
    db = session_class()
    try:
        yield db
    finally:
        db.close()
