"""
taskhub Database Base — SQLAlchemy declarative base, mixins, and engine registry.

Provides:
- Base: SQLAlchemy declarative base for all models
- AuditMixin: date_created, date_modified
- SoftDeleteMixin: deleted flag
- EngineRegistry: named engines (connection pools) with explicit disposal
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Column, DateTime, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all taskhub models."""
    pass


class AuditMixin:
    """Adds date_created and date_modified columns (UTC)."""
    date_created = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    date_modified = Column(DateTime(timezone=True), default=utc_now, nullable=False)


class SoftDeleteMixin:
    """Adds the deleted flag. Deleted rows are never physically removed."""
    deleted = Column(Boolean, default=False, nullable=False)


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class EngineRegistry:
    """
    Registry of named SQLAlchemy engines.

    The registry owns the process's connection pools: engines are created by
    register() and released by dispose(). Nothing else holds an engine.

    Usage:
        registry = EngineRegistry()
        registry.register("taskhub", "postgresql://...")
        engine = registry.get("taskhub")
    """

    def __init__(self):
        self._engines: Dict[str, Engine] = {}

    def register(
        self,
        name: str,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        pool_pre_ping: bool = True,
        **kwargs: Any,
    ) -> Engine:
        """Register a new database engine, replacing any engine of the same name."""
        if name in self._engines:
            self.dispose(name)

        if url.startswith("sqlite"):
            # SQLite connections are shared across request threads
            kwargs.setdefault("connect_args", {"check_same_thread": False})
            if _is_sqlite_memory(url):
                # One connection, or every checkout would see an empty database
                kwargs.setdefault("poolclass", StaticPool)

        if "poolclass" in kwargs:
            engine = create_engine(url, **kwargs)
        else:
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=pool_pre_ping,
                **kwargs,
            )
        self._engines[name] = engine
        return engine

    def get(self, name: str) -> Engine:
        """Get a registered engine by name."""
        if name not in self._engines:
            raise KeyError(f"Engine '{name}' not registered. Available: {list(self._engines.keys())}")
        return self._engines[name]

    def dispose(self, name: Optional[str] = None) -> None:
        """Dispose one or all engines (close connection pools) and forget them."""
        names = [name] if name else list(self._engines.keys())
        for n in names:
            engine = self._engines.pop(n, None)
            if engine is not None:
                engine.dispose()

    def dispose_all(self) -> None:
        """Dispose all engines."""
        self.dispose()

    def health_check(self, name: str) -> bool:
        """Check if an engine can connect."""
        try:
            engine = self.get(name)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False


# Process-scoped engine registry
engine_registry = EngineRegistry()
