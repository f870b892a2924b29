"""
taskhub Security — API-key authentication resolving a caller to its tenant.

Keys look like ``thk_<id_user>_<secret>``. Only a bcrypt hash of the whole
key is stored on the user row; the id prefix selects the row to check.

Usage:
    authenticator = APIKeyAuthenticator()
    ctx = authenticator.authenticate(request.headers["X-API-Key"])
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional, Tuple

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from taskhub.db.models import User, is_storable_id
from taskhub.db.session import read_session
from taskhub.engine.context import TenantContext
from taskhub.engine.errors import TaskhubSecurityError

logger = logging.getLogger("taskhub.engine.security")

API_KEY_PREFIX = "thk"


# ---------------------------------------------------------------------------
# Key Utilities
# ---------------------------------------------------------------------------

def hash_api_key(api_key: str, rounds: int = 12) -> str:
    """Hash an API key using bcrypt."""
    return bcrypt.hashpw(api_key.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_api_key(api_key: str, api_key_hash: str) -> bool:
    """Verify an API key against its bcrypt hash."""
    return bcrypt.checkpw(api_key.encode("utf-8"), api_key_hash.encode("utf-8"))


def generate_api_key(user_id: int, rounds: int = 12) -> Tuple[str, str]:
    """
    Generate an API key for a user.

    Returns:
        Tuple of (api_key, api_key_hash). The api_key is shown once; only the hash is stored.
    """
    api_key = f"{API_KEY_PREFIX}_{user_id}_{secrets.token_urlsafe(32)}"
    return api_key, hash_api_key(api_key, rounds=rounds)


def parse_user_id(api_key: str) -> Optional[int]:
    """User id embedded in a key, or None when the key is malformed or the id out of range."""
    parts = api_key.split("_", 2)
    if len(parts) != 3 or parts[0] != API_KEY_PREFIX:
        return None
    if not (parts[1].isascii() and parts[1].isdigit()):
        return None
    user_id = int(parts[1])
    return user_id if is_storable_id(user_id) else None


# ---------------------------------------------------------------------------
# Authenticator
# ---------------------------------------------------------------------------

class APIKeyAuthenticator:
    """
    Resolves an API key to the caller's TenantContext.

    Args:
        session_factory: sessionmaker for the user lookup; None uses the
            process-wide factory.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def authenticate(self, api_key: Optional[str]) -> TenantContext:
        """
        Raises:
            TaskhubSecurityError: reason "missing_api_key" or "invalid_api_key".
        """
        if not api_key:
            raise TaskhubSecurityError("API key header is required", reason="missing_api_key")

        user_id = parse_user_id(api_key)
        if user_id is None:
            raise TaskhubSecurityError("Invalid API key", reason="invalid_api_key")

        with read_session(self._session_factory) as session:
            user = session.execute(
                select(User).where(User.id_user == user_id, User.is_active.is_(True))
            ).scalar_one_or_none()

        if user is None or not user.api_key_hash or not verify_api_key(api_key, user.api_key_hash):
            logger.warning("Rejected API key for user id %s", user_id)
            raise TaskhubSecurityError("Invalid API key", reason="invalid_api_key", user_id=user_id)

        return TenantContext(
            account_id=user.id_account,
            user_id=user.id_user,
            username=user.username,
        )
