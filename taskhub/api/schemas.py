"""
Request bodies for the task endpoints.

These models only check wire shape (types, required fields). Lengths,
due-date and priority/status ranges are left to taskhub.tasks.rules so
every caller gets the same error codes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

DueDate = Optional[Union[datetime, date]]


class TaskCreateBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    dueDate: DueDate = None
    priority: int = 1


class TaskUpdateBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    dueDate: DueDate = None
    priority: int
    status: int
