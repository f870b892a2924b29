"""
taskhub — Multi-tenant task management backend.
Version: 1.0

Layers:
    taskhub.engine  — configuration, errors, logging, context, authentication
    taskhub.db      — SQLAlchemy base, engine registry, session scopes, models
    taskhub.tasks   — validation rules, tenancy guard, repository, service
    taskhub.api     — FastAPI application and response envelopes
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "tasks", "api"]
