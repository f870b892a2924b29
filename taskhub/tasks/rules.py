"""
Task validation rules — pure checks run before any task mutation.

Checks run in a fixed order and the first failure wins:
title presence, title length, description length, due date, priority,
and (on update) status.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from taskhub.engine.errors import TaskErrorCode, TaskhubValidationError

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
ALLOWED_LEVELS = (0, 1, 2)

Clock = Callable[[], date]


def today_utc() -> date:
    """Current UTC calendar date."""
    return datetime.now(timezone.utc).date()


def to_utc_date(value: Any) -> date:
    """
    Calendar date of a due-date value in UTC.
    Aware datetimes are converted; naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"due date must be a date or datetime, got {type(value).__name__}")


def _is_level(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value in ALLOWED_LEVELS


def validate_title(title: Optional[str]) -> None:
    if title is None or not title.strip():
        raise TaskhubValidationError(TaskErrorCode.TITLE_REQUIRED, field="title")
    if len(title.strip()) < TITLE_MIN_LENGTH:
        raise TaskhubValidationError(TaskErrorCode.TITLE_TOO_SHORT, field="title")
    # Raw length, surrounding whitespace included
    if len(title) > TITLE_MAX_LENGTH:
        raise TaskhubValidationError(TaskErrorCode.TITLE_TOO_LONG, field="title")


def validate_description(description: Optional[str]) -> None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise TaskhubValidationError(TaskErrorCode.DESCRIPTION_TOO_LONG, field="description")


def validate_due_date(due_date: Any, today: Optional[date] = None) -> None:
    if due_date is None:
        return
    if to_utc_date(due_date) < (today or today_utc()):
        raise TaskhubValidationError(TaskErrorCode.DUE_DATE_IN_PAST, field="dueDate")


def validate_priority(priority: Any) -> None:
    if not _is_level(priority):
        raise TaskhubValidationError(TaskErrorCode.INVALID_PRIORITY, field="priority")


def validate_status(status: Any) -> None:
    if not _is_level(status):
        raise TaskhubValidationError(TaskErrorCode.INVALID_STATUS, field="status")


def validate_task_fields(
    title: Optional[str],
    description: Optional[str],
    due_date: Any,
    priority: Any,
    today: Optional[date] = None,
) -> None:
    """Checks shared by create and update."""
    validate_title(title)
    validate_description(description)
    validate_due_date(due_date, today)
    validate_priority(priority)


def validate_create(
    title: Optional[str],
    description: Optional[str],
    due_date: Any,
    priority: Any,
    today: Optional[date] = None,
) -> None:
    """Create-time rules."""
    validate_task_fields(title, description, due_date, priority, today)


def validate_update(
    title: Optional[str],
    description: Optional[str],
    due_date: Any,
    priority: Any,
    status: Any,
    today: Optional[date] = None,
) -> None:
    """Update-time rules: the create rules followed by the status check."""
    validate_task_fields(title, description, due_date, priority, today)
    validate_status(status)
