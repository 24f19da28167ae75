"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (production)
and SQLite (local development and tests).
Provides an engine factory, the default session factory, and the
declarative base shared by all models.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from result_portal.logging_config import get_logger, log_with_context

logger = get_logger("db")

# Read database URL from environment
# Fallback to SQLite for local development when PostgreSQL is not available
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./result_portal.db"
)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    # WAL lets readers proceed while an upload batch is being written
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine configured for the given database type.

    SQLite does not support pool_size, max_overflow, or pool_pre_ping,
    and needs check_same_thread=False because FastAPI serves sync
    endpoints from a thread pool.
    """
    engine_kwargs = {"echo": False}

    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    new_engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        event.listen(new_engine, "connect", _set_sqlite_pragma)

    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory with explicit transaction control."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = build_engine(DATABASE_URL)

# Session factory - creates new database sessions
SessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def create_tables(bind: Engine = None):
    """
    Create all database tables directly (used for SQLite local dev).
    For PostgreSQL, use Alembic migrations instead.
    """
    target = bind or engine
    Base.metadata.create_all(bind=target)
    log_with_context(logger, "INFO", "Database tables ensured",
                     extra_data={"dialect": target.dialect.name,
                                 "tables": sorted(Base.metadata.tables)})
