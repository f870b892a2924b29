"""
taskhub Database Session Management.

Single entry point for database initialisation plus context managers for
DB access. The connection pool lives in the process-scoped EngineRegistry:
it is created by init_db() (or on first use from taskhub.yaml) and drained
by close_all_sessions() at shutdown.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.orm import Session, sessionmaker

from taskhub.db.base import Base, engine_registry

logger = logging.getLogger("taskhub.db.session")

ENGINE_NAME = "taskhub"

_session_factory: Optional[sessionmaker] = None


def init_db(
    db_url: str,
    create_tables: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    pool_pre_ping: bool = True,
) -> sessionmaker:
    """
    Initialise the task database.

    What it does
    ────────────
    1. Registers the "taskhub" engine in the EngineRegistry (replacing and
       disposing any previous one).
    2. Optionally runs ``Base.metadata.create_all()`` — for ``taskhub init``
       and tests.
    3. Stores the session factory as the module-level factory used by
       session_scope() and read_session().

    Returns:
        The sessionmaker bound to the new engine.
    """
    global _session_factory

    # Register models on Base.metadata before create_all
    import taskhub.db.models  # noqa: F401

    engine = engine_registry.register(
        ENGINE_NAME, db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
    )

    if create_tables:
        Base.metadata.create_all(engine)

    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("Database initialised (%s)", engine.url.render_as_string(hide_password=True))
    return _session_factory


def init_db_from_config(config=None) -> sessionmaker:
    """Initialise from the database section of taskhub.yaml."""
    if config is None:
        from taskhub.engine.config import get_config
        config = get_config()
    db = config.database
    return init_db(
        db.url,
        create_tables=db.create_tables,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        pool_pre_ping=db.pool_pre_ping,
    )


def get_session_factory() -> sessionmaker:
    """Return the session factory, initialising from config on first use."""
    if _session_factory is None:
        return init_db_from_config()
    return _session_factory


def get_session(factory: Optional[sessionmaker] = None) -> Session:
    """Get a new session from *factory*, or from the module factory."""
    return (factory or get_session_factory())()


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for one database transaction: commit on success,
    rollback on any exception.

    Usage:
        with session_scope() as session:
            session.add(task)
    """
    session = get_session(factory)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def read_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Context manager for reads outside an explicit transaction. Never commits."""
    session = get_session(factory)
    try:
        yield session
    finally:
        session.close()


def close_all_sessions() -> None:
    """Dispose all engines and forget the session factory. Used during shutdown."""
    global _session_factory
    _session_factory = None
    engine_registry.dispose_all()
