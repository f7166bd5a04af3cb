"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engines for the primary and elevated (admin) credentials
- Session context managers with commit/rollback semantics
- Table definitions for profiles, subscriptions, vendors, verifications,
  the loyalty ledger, referrals, affiliates and billing events
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, UniqueConstraint, false
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import os

from marketplace.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engines and session factories
_engine = None
_SessionLocal = None
_admin_engine = None
_AdminSessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def get_admin_database_url() -> Optional[str]:
    """Elevated credentials; falls back to the primary URL."""
    return settings.ADMIN_DATABASE_URL or get_database_url()


def _create_engine(url: str):
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the primary SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = _create_engine(url)
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def init_admin_engine(database_url: Optional[str] = None, engine=None):
    """
    Initialize the elevated engine used for access-lookup retries.

    Passing ``engine`` reuses an existing engine (tests share one SQLite
    connection between both credentials).
    """
    global _admin_engine, _AdminSessionLocal

    if engine is None:
        url = database_url or get_admin_database_url()
        if not url:
            raise ValueError("ADMIN_DATABASE_URL or DATABASE_URL must be configured.")
        engine = _create_engine(url)

    _admin_engine = engine
    _AdminSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_admin_engine
    )
    return _admin_engine


def reset_engines() -> None:
    """Dispose and forget both engines (tests)."""
    global _engine, _SessionLocal, _admin_engine, _AdminSessionLocal
    for eng in {_engine, _admin_engine} - {None}:
        eng.dispose()
    _engine = None
    _SessionLocal = None
    _admin_engine = None
    _AdminSessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_admin_session_factory():
    """Get the elevated session factory."""
    global _AdminSessionLocal
    if _AdminSessionLocal is None:
        init_admin_engine()
    return _AdminSessionLocal


@contextmanager
def _session_scope(factory):
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    with _session_scope(get_session_factory()) as session:
        yield session


@contextmanager
def get_admin_db_session():
    """Context manager for sessions under elevated credentials."""
    with _session_scope(get_admin_session_factory()) as session:
        yield session


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)
