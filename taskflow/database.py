"""Database engine lifecycle and session management for TaskFlow.

Exports:
- Base: declarative base for models
- SessionLocal: session factory, bound by `init_engine()`
- init_engine() / dispose_engine(): create and release the connection pool
- get_db: FastAPI dependency that yields a DB session
- init_db(): helper to create tables (calls Base.metadata.create_all)

Behavior:
- The engine is created during application startup (see `taskflow.main`),
  from `taskflow.config.database_url()`, and disposed at shutdown.
- Uses connect_args for SQLite to allow multi-threaded access in dev.
"""

from __future__ import annotations

import logging
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from taskflow import config

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None

# Session factory; bound to the engine once it exists
SessionLocal = sessionmaker(autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)

# Declarative base for models
Base = declarative_base()


def init_engine(url: Optional[str] = None) -> Engine:
    """Create the process-wide engine (connection pool) and bind `SessionLocal`.

    Raises `config.ConfigError` when no database configuration is available.
    """
    global _engine
    if _engine is not None:
        return _engine

    database_url = url or config.database_url()
    if database_url.startswith("sqlite"):
        # SQLite requires `check_same_thread=False` when using threads (uvicorn)
        engine = create_engine(database_url, connect_args={"check_same_thread": False}, future=True)
    else:
        engine = create_engine(
            database_url,
            connect_args=config.database_connect_args(),
            pool_size=10,
            pool_pre_ping=True,
            future=True,
        )

    SessionLocal.configure(bind=engine)
    _engine = engine
    logger.info("Database engine created for dialect %s", engine.dialect.name)
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine is not initialized; call init_engine() first")
    return _engine


def dispose_engine() -> None:
    """Close every pooled connection and forget the engine."""
    global _engine
    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    logger.info("Database engine disposed")


def get_db() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy DB session for FastAPI dependencies.

    Usage:
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    get_engine()
    db: Optional[Session] = None
    try:
        db = SessionLocal()
        yield db
    finally:
        if db is not None:
            db.close()


def init_db() -> None:
    """Create all tables for the registered models.

    This will import `taskflow.models` to ensure model classes are registered
    with `Base` before calling `Base.metadata.create_all()`.
    """
    try:
        # Import models to ensure they are registered on Base.metadata
        # (import here to avoid circular imports at module import time)
        import taskflow.models  # noqa: F401

        logger.info("Creating database tables (if not exists)")
        Base.metadata.create_all(bind=get_engine())
        logger.info("Database initialized")
    except Exception as exc:
        logger.exception("Failed to initialize database: %s", exc)
        raise


__all__ = ["Base", "SessionLocal", "init_engine", "get_engine", "dispose_engine", "get_db", "init_db"]
