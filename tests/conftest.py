"""
taskhub Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest

# Every test runs against "today" = 2026-03-01 (UTC)
TODAY = date(2026, 3, 1)
START = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Global state — reset singletons between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Reset config, engines and the log queue around each test."""
    import taskhub.engine.config as cfg_mod
    from taskhub.db.session import close_all_sessions
    from taskhub.engine.logging import shutdown_logging

    monkeypatch.delenv("TASKHUB_DATABASE_URL", raising=False)
    monkeypatch.delenv("TASKHUB_ENV", raising=False)
    cfg_mod._config = None
    yield
    cfg_mod._config = None
    close_all_sessions()
    shutdown_logging()


class TickingClock:
    """UTC clock that advances one second per call."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock():
    return TickingClock()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    """In-memory SQLite with all tables; returns the session factory."""
    from taskhub.db.session import init_db

    return init_db("sqlite://", create_tables=True)


@dataclass
class Tenants:
    account_a: int
    account_b: int
    user_a: int
    user_a2: int
    user_b: int
    key_a: str
    key_a2: str
    key_b: str


@pytest.fixture
def tenants(db):
    """
    Two accounts: A with users a and a2, B with user b.
    API keys are hashed with the minimum bcrypt cost.
    """
    from taskhub.tenants import create_account, create_user

    account_a = create_account("Acme", session_factory=db)
    account_b = create_account("Globex", session_factory=db)
    user_a, key_a = create_user(account_a, "alice", session_factory=db, bcrypt_rounds=4)
    user_a2, key_a2 = create_user(account_a, "arthur", session_factory=db, bcrypt_rounds=4)
    user_b, key_b = create_user(account_b, "bob", session_factory=db, bcrypt_rounds=4)
    return Tenants(account_a, account_b, user_a, user_a2, user_b, key_a, key_a2, key_b)


@pytest.fixture
def repository(db, clock):
    from taskhub.tasks.repository import TaskRepository

    return TaskRepository(session_factory=db, today=lambda: TODAY, now=clock)


@pytest.fixture
def service(repository):
    from taskhub.tasks.service import TaskService

    return TaskService(repository)


@pytest.fixture
def ctx_a(tenants):
    from taskhub.engine.context import TenantContext

    return TenantContext(account_id=tenants.account_a, user_id=tenants.user_a, username="alice")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def app_config(tmp_path):
    from taskhub.engine.config import TaskhubConfig

    return TaskhubConfig(
        environment="prod",
        database={"url": "sqlite://"},
        logging={"directory": str(tmp_path / "logs")},
    )


@pytest.fixture
def client(db, tenants, service, app_config):
    """TestClient over the app wired to the in-memory database (lifespan not run)."""
    from fastapi.testclient import TestClient

    from taskhub.api.app import create_app
    from taskhub.engine.security import APIKeyAuthenticator

    app = create_app(app_config, service=service, authenticator=APIKeyAuthenticator(db))
    return TestClient(app)


@pytest.fixture
def headers_a(tenants):
    return {"X-API-Key": tenants.key_a}


@pytest.fixture
def headers_b(tenants):
    return {"X-API-Key": tenants.key_b}
