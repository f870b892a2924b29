"""
Tenant administration — accounts and their API-key users.

Used by the ``taskhub`` CLI to seed a database. API keys are returned once
and only their bcrypt hash is stored.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from taskhub.db.models import Account, User
from taskhub.db.session import session_scope
from taskhub.engine.errors import TaskErrorCode, TaskhubNotFoundError
from taskhub.engine.security import generate_api_key

logger = logging.getLogger("taskhub.tenants")


def create_account(name: str, session_factory: Optional[sessionmaker] = None) -> int:
    """Create an account and return its id."""
    with session_scope(session_factory) as session:
        account = Account(name=name)
        session.add(account)
        session.flush()
        account_id = account.id_account
    logger.info("Created account %s (%s)", account_id, name)
    return account_id


def create_user(
    account_id: int,
    username: str,
    session_factory: Optional[sessionmaker] = None,
    bcrypt_rounds: int = 12,
) -> Tuple[int, str]:
    """
    Create a user under *account_id* with a fresh API key.

    Returns:
        Tuple of (user_id, api_key).

    Raises:
        TaskhubNotFoundError: the account does not exist.
    """
    with session_scope(session_factory) as session:
        if session.execute(select(Account.id_account).where(Account.id_account == account_id)).first() is None:
            raise TaskhubNotFoundError(TaskErrorCode.ACCOUNT_DOES_NOT_EXIST, account_id=account_id)

        user = User(id_account=account_id, username=username)
        session.add(user)
        session.flush()
        api_key, api_key_hash = generate_api_key(user.id_user, rounds=bcrypt_rounds)
        user.api_key_hash = api_key_hash
        user_id = user.id_user
    logger.info("Created user %s (%s) in account %s", user_id, username, account_id)
    return user_id, api_key
