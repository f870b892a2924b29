"""taskhub Engine — Configuration, errors, logging, context, authentication."""

from taskhub.engine.context import TenantContext  # noqa: F401
from taskhub.engine.errors import TaskhubError  # noqa: F401

__all__ = [
    "TenantContext",
    "TaskhubError",
]
