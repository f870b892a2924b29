"""
taskhub Error Hierarchy — Structured exceptions for task operations.

All errors carry an optional execution_id so a failure can be traced from
the HTTP request through the service and repository into the log files.

Hierarchy:
    TaskhubError
    ├── TaskhubClientError       — Caller-input fault, reported as a 400
    │   ├── TaskhubValidationError — Field validation failed
    │   └── TaskhubNotFoundError   — Account / user / task does not exist in scope
    ├── TaskhubRecordError       — Storage or transaction failure
    ├── TaskhubConfigError       — Configuration error
    └── TaskhubSecurityError     — Authentication failure
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class TaskErrorCode(str, Enum):
    """Client-facing error codes. Values are the wire format."""

    TITLE_REQUIRED = "titleRequired"
    TITLE_TOO_SHORT = "titleTooShort"
    TITLE_TOO_LONG = "titleTooLong"
    DESCRIPTION_TOO_LONG = "descriptionTooLong"
    DUE_DATE_IN_PAST = "dueDateInPast"
    INVALID_PRIORITY = "invalidPriority"
    INVALID_STATUS = "invalidStatus"
    ACCOUNT_DOES_NOT_EXIST = "accountDoesntExist"
    USER_DOES_NOT_EXIST = "userDoesntExist"
    TASK_DOES_NOT_EXIST = "taskDoesntExist"


ERROR_MESSAGES: Dict[TaskErrorCode, str] = {
    TaskErrorCode.TITLE_REQUIRED: "Title is required",
    TaskErrorCode.TITLE_TOO_SHORT: "Title must be at least 3 characters",
    TaskErrorCode.TITLE_TOO_LONG: "Title cannot exceed 100 characters",
    TaskErrorCode.DESCRIPTION_TOO_LONG: "Description cannot exceed 1000 characters",
    TaskErrorCode.DUE_DATE_IN_PAST: "Due date cannot be in the past",
    TaskErrorCode.INVALID_PRIORITY: "Invalid priority value",
    TaskErrorCode.INVALID_STATUS: "Invalid status value",
    TaskErrorCode.ACCOUNT_DOES_NOT_EXIST: "Account does not exist",
    TaskErrorCode.USER_DOES_NOT_EXIST: "User does not exist",
    TaskErrorCode.TASK_DOES_NOT_EXIST: "Task not found",
}


class TaskhubError(Exception):
    """
    Base error for all taskhub failures.
    All context is serializable to JSON for the structured log files.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.execution_id: Optional[str] = context.get("execution_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "execution_id": self.execution_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k != "execution_id"
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        return " | ".join(parts)


class TaskhubClientError(TaskhubError):
    """
    Caller-input fault carrying a TaskErrorCode.
    The message defaults to the standard text for the code.
    """

    def __init__(self, code: TaskErrorCode, message: Optional[str] = None, **context: Any):
        self.code = TaskErrorCode(code)
        super().__init__(message or ERROR_MESSAGES[self.code], **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["code"] = self.code.value
        return d

    def __repr__(self) -> str:
        return f"{self.error_type}[{self.code.value}]: {self.message}"


class TaskhubValidationError(TaskhubClientError):
    """Field validation failed (title, description, due date, priority, status)."""

    def __init__(self, code: TaskErrorCode, message: Optional[str] = None, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(code, message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class TaskhubNotFoundError(TaskhubClientError):
    """Account, user or task does not exist within the caller's scope."""
    pass


class TaskhubRecordError(TaskhubError):
    """Record operation failed at the storage layer (create, update, delete, query)."""

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.record_id: Optional[int] = context.get("record_id")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["record_type"] = self.record_type
        d["record_id"] = self.record_id
        d["operation"] = self.operation
        return d


class TaskhubConfigError(TaskhubError):
    """Configuration error — invalid taskhub.yaml."""
    pass


class TaskhubSecurityError(TaskhubError):
    """
    Authentication failed. Carries a machine-readable reason
    (missing_api_key / invalid_api_key) for the HTTP layer.
    """

    def __init__(self, message: str, **context: Any):
        self.reason: str = context.get("reason", "invalid_api_key")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["reason"] = self.reason
        return d
