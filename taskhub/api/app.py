"""
taskhub HTTP API — FastAPI application exposing the task endpoints.

Routes (under config.api.prefix, default /api/v1/internal):
    GET    /task        list, optional ?status= & ?priority=
    POST   /task        create
    GET    /task/{id}   get
    PUT    /task/{id}   update
    DELETE /task/{id}   soft delete
    GET    /health      database reachability (no auth)

Run:
    taskhub run
    uvicorn taskhub.api.app:create_app --factory --port 8000
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhub import __version__
from taskhub.api.envelope import APIResponse, error_response
from taskhub.api.schemas import TaskCreateBody, TaskUpdateBody
from taskhub.db.base import engine_registry
from taskhub.db.session import ENGINE_NAME, close_all_sessions, get_session_factory
from taskhub.engine.config import TaskhubConfig, get_config
from taskhub.engine.context import TenantContext
from taskhub.engine.errors import TaskhubSecurityError
from taskhub.engine.logging import (
    init_logging,
    log,
    log_security_event,
    log_system_event,
    log_web_api_request,
    shutdown_logging,
)
from taskhub.engine.security import APIKeyAuthenticator
from taskhub.tasks.service import TaskService

logger = logging.getLogger("taskhub.api")


def _to_json(resp: APIResponse) -> JSONResponse:
    return JSONResponse(status_code=resp.status_code, content=jsonable_encoder(resp.body))


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_tenant(request: Request) -> TenantContext:
    """Resolve the caller's tenant from the API key header."""
    header = request.app.state.config.security.api_key_header
    ctx = request.app.state.authenticator.authenticate(request.headers.get(header))
    request.state.tenant = ctx
    return ctx


# ---------------------------------------------------------------------------
# Task routes
# ---------------------------------------------------------------------------

router = APIRouter(tags=["task"])


@router.get("/task")
def list_tasks(
    status: Optional[int] = Query(default=None, ge=0, le=2),
    priority: Optional[int] = Query(default=None, ge=0, le=2),
    ctx: TenantContext = Depends(get_tenant),
    service: TaskService = Depends(get_service),
):
    return _to_json(service.list(ctx, status=status, priority=priority))


@router.post("/task")
def create_task(
    body: TaskCreateBody,
    ctx: TenantContext = Depends(get_tenant),
    service: TaskService = Depends(get_service),
):
    return _to_json(service.create(
        ctx, body.title, body.description, body.dueDate, body.priority,
    ))


@router.get("/task/{task_id}")
def get_task(
    task_id: int = Path(gt=0),
    ctx: TenantContext = Depends(get_tenant),
    service: TaskService = Depends(get_service),
):
    return _to_json(service.get(ctx, task_id))


@router.put("/task/{task_id}")
def update_task(
    body: TaskUpdateBody,
    task_id: int = Path(gt=0),
    ctx: TenantContext = Depends(get_tenant),
    service: TaskService = Depends(get_service),
):
    return _to_json(service.update(
        ctx, task_id, body.title, body.description, body.dueDate, body.priority, body.status,
    ))


@router.delete("/task/{task_id}")
def delete_task(
    task_id: int = Path(gt=0),
    ctx: TenantContext = Depends(get_tenant),
    service: TaskService = Depends(get_service),
):
    return _to_json(service.delete(ctx, task_id))


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[TaskhubConfig] = None,
    service: Optional[TaskService] = None,
    authenticator: Optional[APIKeyAuthenticator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: loaded TaskhubConfig; None loads taskhub.yaml.
        service: TaskService to serve; None builds one on the process-wide
            session factory.
        authenticator: resolves API keys to TenantContext; None uses
            APIKeyAuthenticator on the process-wide session factory.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_logging(
            log_dir=config.logging.directory,
            flush_interval_ms=config.logging.flush_interval_ms,
            flush_batch_size=config.logging.flush_batch_size,
            max_queue_size=config.logging.max_queue_size,
            level=config.logging.level,
        )
        log(log_system_event("startup", details={"version": __version__, "environment": config.environment}))
        try:
            yield
        finally:
            log(log_system_event("shutdown"))
            close_all_sessions()
            shutdown_logging()

    app = FastAPI(
        title=config.name,
        description="Multi-tenant task management API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.task_service = service or TaskService(debug=config.debug_errors)
    app.state.authenticator = authenticator or APIKeyAuthenticator()

    # -- request logging ----------------------------------------------------

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        tenant: Optional[TenantContext] = getattr(request.state, "tenant", None)
        log(log_web_api_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
            execution_id=tenant.execution_id if tenant else None,
            account_id=tenant.account_id if tenant else None,
            user_id=tenant.user_id if tenant else None,
        ))
        return response

    # -- error handlers -----------------------------------------------------

    @app.exception_handler(TaskhubSecurityError)
    async def security_error_handler(request: Request, exc: TaskhubSecurityError):
        log(log_security_event(
            "authentication_failed",
            reason=exc.reason,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        ))
        return JSONResponse(
            status_code=401,
            content=error_response(exc.message, code=exc.reason.upper()),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_response(
                "Request validation failed",
                code="VALIDATION_ERROR",
                details=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content=error_response(
                    f"Route {request.method} {request.url.path} not found",
                    code="NOT_FOUND",
                    path=request.url.path,
                    method=request.method,
                ),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail), code=f"HTTP_{exc.status_code}"),
        )

    # -- routes ---------------------------------------------------------------

    @app.get("/health")
    def health():
        get_session_factory()
        healthy = engine_registry.health_check(ENGINE_NAME)
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "unhealthy",
                "database": healthy,
                "version": __version__,
            },
        )

    app.include_router(router, prefix=config.api.prefix)
    return app
