"""
taskhub Tenant Context — Who is calling, resolved once per request.

The authenticated (account, user) pair is never looked up globally by the
task layer: the HTTP surface resolves it through an Authenticator and hands
the resulting TenantContext to TaskService explicitly.

Usage:
    from taskhub.engine.context import TenantContext
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class TenantContext:
    """
    Per-request caller identity.

    account_id / user_id scope every task operation; execution_id ties the
    request's log entries together.
    """

    account_id: int
    user_id: int
    username: str = ""
    execution_id: str = field(default_factory=new_execution_id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging."""
        return {
            "account_id": self.account_id,
            "user_id": self.user_id,
            "username": self.username,
            "execution_id": self.execution_id,
        }
