"""Tenancy guard — the referenced account exists and the user belongs to it."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.db.models import Account, User, is_storable_id
from taskhub.engine.errors import TaskErrorCode, TaskhubNotFoundError


class TenancyGuard:
    """Existence checks for an (account, user) scope, run on the caller's session."""

    def check(self, session: Session, account_id: int, user_id: int) -> None:
        """
        Raises:
            TaskhubNotFoundError: accountDoesntExist, then userDoesntExist.
        """
        account = None
        if is_storable_id(account_id):
            account = session.execute(
                select(Account.id_account).where(Account.id_account == account_id)
            ).first()
        if account is None:
            raise TaskhubNotFoundError(
                TaskErrorCode.ACCOUNT_DOES_NOT_EXIST, account_id=account_id,
            )

        user = None
        if is_storable_id(user_id):
            user = session.execute(
                select(User.id_user).where(
                    User.id_user == user_id,
                    User.id_account == account_id,
                )
            ).first()
        if user is None:
            raise TaskhubNotFoundError(
                TaskErrorCode.USER_DOES_NOT_EXIST, account_id=account_id, user_id=user_id,
            )
