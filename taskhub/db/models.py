"""
taskhub Models — SQLAlchemy models for the task database.

Tables:
1. accounts — Tenants; every user and task belongs to exactly one
2. users    — Users within an account, authenticated by API key
3. tasks    — Task items owned by an (account, user) pair, soft-deleted
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)

from taskhub.db.base import AuditMixin, Base, SoftDeleteMixin, utc_now

# Largest value an Integer key column holds (32-bit signed)
MAX_ID = 2**31 - 1


def is_storable_id(value: int) -> bool:
    return 0 < value <= MAX_ID


class TaskPriority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class TaskStatus(IntEnum):
    PENDING = 0
    IN_PROGRESS = 1
    COMPLETED = 2


# ---------------------------------------------------------------------------
# 1. Accounts
# ---------------------------------------------------------------------------

class Account(Base):
    __tablename__ = "accounts"

    id_account = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    date_created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Account(id={self.id_account}, name='{self.name}')>"


# ---------------------------------------------------------------------------
# 2. Users
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id_user = Column(Integer, primary_key=True, autoincrement=True)
    id_account = Column(Integer, ForeignKey("accounts.id_account"), nullable=False)
    username = Column(String(100), unique=True, nullable=False, index=True)
    api_key_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    date_created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_users_account_user", "id_account", "id_user"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id_user}, account={self.id_account}, username='{self.username}')>"


# ---------------------------------------------------------------------------
# 3. Tasks
# ---------------------------------------------------------------------------

class Task(Base, AuditMixin, SoftDeleteMixin):
    __tablename__ = "tasks"

    id_task = Column(Integer, primary_key=True, autoincrement=True)
    id_account = Column(Integer, ForeignKey("accounts.id_account"), nullable=False)
    id_user = Column(Integer, ForeignKey("users.id_user"), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=True)
    due_date = Column(Date, nullable=True)
    priority = Column(Integer, default=int(TaskPriority.MEDIUM), nullable=False)
    status = Column(Integer, default=int(TaskStatus.PENDING), nullable=False)

    __table_args__ = (
        CheckConstraint("priority BETWEEN 0 AND 2", name="ck_tasks_priority"),
        CheckConstraint("status BETWEEN 0 AND 2", name="ck_tasks_status"),
        Index("ix_tasks_account", "id_account"),
        Index("ix_tasks_account_user", "id_account", "id_user"),
        Index("ix_tasks_account_status", "id_account", "status"),
        Index("ix_tasks_account_priority", "id_account", "priority"),
        Index("ix_tasks_account_due_date", "id_account", "due_date"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation. Tenancy columns and the deleted flag stay internal."""
        return {
            "idTask": self.id_task,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority,
            "status": self.status,
            "dateCreated": self.date_created.isoformat() if self.date_created else None,
            "dateModified": self.date_modified.isoformat() if self.date_modified else None,
        }

    def __repr__(self) -> str:
        return (
            f"<Task(id={self.id_task}, account={self.id_account}, user={self.id_user}, "
            f"title='{self.title}', status={self.status}, deleted={self.deleted})>"
        )
