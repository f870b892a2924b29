"""taskhub Database — Declarative base, engine registry, sessions and models."""

from taskhub.db.base import Base, engine_registry
from taskhub.db.models import Account, Task, User

__all__ = [
    "Base",
    "engine_registry",
    "Account",
    "Task",
    "User",
]
