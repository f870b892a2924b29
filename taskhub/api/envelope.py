"""
Response envelopes shared by every endpoint.

Success: {"success": true, "data": ..., "metadata": {..., "timestamp": ...}}
Error:   {"success": false, "error": {"code", "message"[, "details"]}, "timestamp": ...}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel

INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
GENERAL_ERROR_MESSAGE = "An unexpected error occurred"


class APIResponse(BaseModel):
    """Normalized outbound API response."""

    status_code: int = 200
    body: Any = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "metadata": {**(metadata or {}), "timestamp": _timestamp()},
    }


def error_response(
    message: str,
    code: str = "ERROR",
    details: Any = None,
    **extra: Any,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    error.update(extra)
    return {
        "success": False,
        "error": error,
        "timestamp": _timestamp(),
    }
