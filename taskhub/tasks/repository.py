"""
Task repository — create, get, list, update and soft-delete tasks scoped by
(account, user).

Every mutation is one transaction: validation, tenancy and existence checks
and the write all happen inside session_scope(), so any failure rolls the
whole operation back. Reads use read_session() and never commit.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from taskhub.db.base import utc_now
from taskhub.db.models import Task, TaskPriority, TaskStatus, is_storable_id
from taskhub.db.session import read_session, session_scope
from taskhub.engine.errors import TaskErrorCode, TaskhubNotFoundError, TaskhubRecordError
from taskhub.engine.logging import log, log_task_operation
from taskhub.tasks import rules
from taskhub.tasks.tenancy import TenancyGuard

logger = logging.getLogger("taskhub.tasks.repository")

MUTABLE_FIELDS = ("title", "description", "due_date", "priority", "status")


class TaskRepository:
    """
    Persistence operations for tasks.

    Args:
        session_factory: sessionmaker to use; None means the process-wide
            factory from taskhub.db.session (initialised on first use).
        guard: TenancyGuard used for account/user checks.
        today: clock returning the current UTC calendar date (due-date rule).
        now: clock returning the current UTC timestamp (audit columns).
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        guard: Optional[TenancyGuard] = None,
        today: Callable[[], date] = rules.today_utc,
        now: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._guard = guard or TenancyGuard()
        self._today = today
        self._now = now

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def create(
        self,
        account_id: int,
        user_id: int,
        title: Optional[str],
        description: Optional[str] = None,
        due_date: Any = None,
        priority: Any = int(TaskPriority.MEDIUM),
        execution_id: Optional[str] = None,
    ) -> int:
        """Create a task and return its id. Status starts Pending."""
        started = time.monotonic()

        def _create(session: Session) -> int:
            rules.validate_create(title, description, due_date, priority, today=self._today())
            self._guard.check(session, account_id, user_id)

            timestamp = self._now()
            task = Task(
                id_account=account_id,
                id_user=user_id,
                title=title.strip(),
                description=description,
                due_date=rules.to_utc_date(due_date) if due_date is not None else None,
                priority=priority,
                status=int(TaskStatus.PENDING),
                date_created=timestamp,
                date_modified=timestamp,
                deleted=False,
            )
            session.add(task)
            session.flush()
            return task.id_task

        task_id = self._in_transaction("create", _create)
        log(log_task_operation(
            "create", account_id, user_id,
            task_id=task_id,
            execution_id=execution_id,
            duration_ms=_elapsed_ms(started),
        ))
        return task_id

    def update(
        self,
        account_id: int,
        user_id: int,
        task_id: int,
        title: Optional[str],
        description: Optional[str],
        due_date: Any,
        priority: Any,
        status: Any,
        execution_id: Optional[str] = None,
    ) -> int:
        """
        Update every mutable field of a task and return its id.

        Account and user existence are not checked separately here: a task
        that matches all three keys implies both.
        """
        started = time.monotonic()
        changed: List[str] = []

        def _update(session: Session) -> int:
            rules.validate_update(title, description, due_date, priority, status, today=self._today())
            task = self._find(session, account_id, user_id, task_id)

            values = {
                "title": title.strip(),
                "description": description,
                "due_date": rules.to_utc_date(due_date) if due_date is not None else None,
                "priority": priority,
                "status": status,
            }
            for name in MUTABLE_FIELDS:
                if getattr(task, name) != values[name]:
                    changed.append(name)
                setattr(task, name, values[name])
            task.date_modified = self._now()
            return task.id_task

        result = self._in_transaction("update", _update, task_id=task_id)
        log(log_task_operation(
            "update", account_id, user_id,
            task_id=result,
            execution_id=execution_id,
            fields_changed=changed,
            duration_ms=_elapsed_ms(started),
        ))
        return result

    def delete(
        self,
        account_id: int,
        user_id: int,
        task_id: int,
        execution_id: Optional[str] = None,
    ) -> int:
        """Soft-delete a task and return its id."""
        started = time.monotonic()

        def _delete(session: Session) -> int:
            self._guard.check(session, account_id, user_id)
            task = self._find(session, account_id, user_id, task_id)
            task.deleted = True
            task.date_modified = self._now()
            return task.id_task

        result = self._in_transaction("delete", _delete, task_id=task_id)
        log(log_task_operation(
            "delete", account_id, user_id,
            task_id=result,
            execution_id=execution_id,
            fields_changed=["deleted"],
            duration_ms=_elapsed_ms(started),
        ))
        return result

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get(self, account_id: int, user_id: int, task_id: int) -> Task:
        """Return one non-deleted task of the (account, user) scope."""
        try:
            with read_session(self._session_factory) as session:
                self._guard.check(session, account_id, user_id)
                return self._find(session, account_id, user_id, task_id)
        except SQLAlchemyError as e:
            raise TaskhubRecordError(
                f"Task get failed: {e}", record_type="task", record_id=task_id, operation="get",
            ) from e

    def list(
        self,
        account_id: int,
        user_id: int,
        status: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> List[Task]:
        """
        Non-deleted tasks of the (account, user) scope, optionally filtered by
        status and/or priority.

        Ordered by priority (high first), due date (soonest first, undated
        last), creation time (newest first), then id (newest first).
        """
        stmt = select(Task).where(
            Task.id_account == account_id,
            Task.id_user == user_id,
            Task.deleted.is_(False),
        )
        if status is not None:
            stmt = stmt.where(Task.status == status)
        if priority is not None:
            stmt = stmt.where(Task.priority == priority)
        stmt = stmt.order_by(
            Task.priority.desc(),
            Task.due_date.is_(None),
            Task.due_date.asc(),
            Task.date_created.desc(),
            Task.id_task.desc(),
        )

        try:
            with read_session(self._session_factory) as session:
                self._guard.check(session, account_id, user_id)
                return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise TaskhubRecordError(
                f"Task list failed: {e}", record_type="task", operation="list",
            ) from e

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _find(self, session: Session, account_id: int, user_id: int, task_id: int) -> Task:
        # Ids past the column range match no row
        if not all(is_storable_id(v) for v in (account_id, user_id, task_id)):
            raise TaskhubNotFoundError(
                TaskErrorCode.TASK_DOES_NOT_EXIST,
                account_id=account_id, user_id=user_id, task_id=task_id,
            )
        task = session.execute(
            select(Task).where(
                Task.id_task == task_id,
                Task.id_account == account_id,
                Task.id_user == user_id,
                Task.deleted.is_(False),
            )
        ).scalar_one_or_none()
        if task is None:
            raise TaskhubNotFoundError(
                TaskErrorCode.TASK_DOES_NOT_EXIST,
                account_id=account_id, user_id=user_id, task_id=task_id,
            )
        return task

    def _in_transaction(self, operation: str, work: Callable[[Session], int], task_id: Optional[int] = None) -> int:
        """Run *work* in one transaction; storage failures become TaskhubRecordError."""
        try:
            with session_scope(self._session_factory) as session:
                return work(session)
        except SQLAlchemyError as e:
            logger.error("Task %s failed and was rolled back: %s", operation, e)
            raise TaskhubRecordError(
                f"Task {operation} failed: {e}",
                record_type="task", record_id=task_id, operation=operation,
            ) from e


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)
