"""taskhub Tasks — Validation rules, tenancy guard, repository and service."""

from taskhub.tasks.repository import TaskRepository
from taskhub.tasks.service import TaskService
from taskhub.tasks.tenancy import TenancyGuard

__all__ = [
    "TaskRepository",
    "TaskService",
    "TenancyGuard",
]
