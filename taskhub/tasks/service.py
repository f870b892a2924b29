"""
Task service — the boundary between task operations and the external
error contract.

Callers pass the authenticated TenantContext explicitly. Client faults
(validation, tenancy, existence) become 400 responses carrying their code;
anything else becomes a generic 500 and is logged with its traceback.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from taskhub.api.envelope import (
    GENERAL_ERROR_MESSAGE,
    INTERNAL_SERVER_ERROR,
    APIResponse,
    error_response,
    success_response,
)
from taskhub.db.models import TaskPriority
from taskhub.engine.context import TenantContext
from taskhub.engine.errors import TaskhubClientError
from taskhub.engine.logging import log, log_system_event, log_task_operation
from taskhub.tasks.repository import TaskRepository

logger = logging.getLogger("taskhub.tasks.service")


class TaskService:
    """
    Args:
        repository: TaskRepository doing the work.
        debug: include exception type and text in 500 bodies (dev only).
    """

    def __init__(self, repository: Optional[TaskRepository] = None, debug: bool = False):
        self._repository = repository or TaskRepository()
        self._debug = debug

    @property
    def repository(self) -> TaskRepository:
        return self._repository

    def create(
        self,
        ctx: TenantContext,
        title: Optional[str],
        description: Optional[str] = None,
        due_date: Any = None,
        priority: Any = int(TaskPriority.MEDIUM),
    ) -> APIResponse:
        return self._call("create", ctx, lambda: {"idTask": self._repository.create(
            ctx.account_id, ctx.user_id, title, description, due_date, priority,
            execution_id=ctx.execution_id,
        )})

    def list(
        self,
        ctx: TenantContext,
        status: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> APIResponse:
        return self._call("list", ctx, lambda: [
            task.to_dict()
            for task in self._repository.list(ctx.account_id, ctx.user_id, status=status, priority=priority)
        ])

    def get(self, ctx: TenantContext, task_id: int) -> APIResponse:
        return self._call(
            "get", ctx,
            lambda: self._repository.get(ctx.account_id, ctx.user_id, task_id).to_dict(),
            task_id=task_id,
        )

    def update(
        self,
        ctx: TenantContext,
        task_id: int,
        title: Optional[str],
        description: Optional[str],
        due_date: Any,
        priority: Any,
        status: Any,
    ) -> APIResponse:
        return self._call("update", ctx, lambda: {"idTask": self._repository.update(
            ctx.account_id, ctx.user_id, task_id, title, description, due_date, priority, status,
            execution_id=ctx.execution_id,
        )}, task_id=task_id)

    def delete(self, ctx: TenantContext, task_id: int) -> APIResponse:
        return self._call("delete", ctx, lambda: {"idTask": self._repository.delete(
            ctx.account_id, ctx.user_id, task_id, execution_id=ctx.execution_id,
        )}, task_id=task_id)

    def _call(
        self,
        operation: str,
        ctx: TenantContext,
        work: Callable[[], Any],
        task_id: Optional[int] = None,
    ) -> APIResponse:
        try:
            data = work()
        except TaskhubClientError as e:
            logger.info(
                "Task %s rejected: %s (account=%s user=%s execution_id=%s)",
                operation, e.code.value, ctx.account_id, ctx.user_id, ctx.execution_id,
            )
            log(log_task_operation(
                operation, ctx.account_id, ctx.user_id,
                task_id=task_id,
                execution_id=ctx.execution_id,
                error_code=e.code.value,
            ))
            return APIResponse(status_code=400, body=error_response(e.message, code=e.code.value))
        except Exception as e:
            logger.exception(
                "Task %s failed (account=%s user=%s execution_id=%s)",
                operation, ctx.account_id, ctx.user_id, ctx.execution_id,
            )
            log(log_system_event("task_operation_failed", level="ERROR", details={
                "operation": operation,
                "execution_id": ctx.execution_id,
                "error_type": type(e).__name__,
                "error": str(e),
            }))
            details = {"type": type(e).__name__, "error": str(e)} if self._debug else None
            return APIResponse(
                status_code=500,
                body=error_response(GENERAL_ERROR_MESSAGE, code=INTERNAL_SERVER_ERROR, details=details),
            )
        return APIResponse(status_code=200, body=success_response(data))
