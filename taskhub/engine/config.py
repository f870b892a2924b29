"""
taskhub Configuration — Load and validate taskhub.yaml at startup.

Usage:
    from taskhub.engine.config import load_config, get_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from taskhub.engine.errors import TaskhubConfigError

CONFIG_FILENAME = "taskhub.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for taskhub.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///taskhub.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    create_tables: bool = False


class LogRetentionConfig(BaseModel):
    execution_days: int = 90
    performance_days: int = 30
    security_days: int = 365

    def as_dict(self) -> Dict[str, int]:
        return {
            "execution": self.execution_days,
            "performance": self.performance_days,
            "security": self.security_days,
        }


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".taskhub/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000
    compress_after_days: int = 7
    retention: LogRetentionConfig = LogRetentionConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log level '{v}'")
        return v


class SecurityConfig(BaseModel):
    api_key_header: str = "X-API-Key"
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)


class APIConfig(BaseModel):
    prefix: str = "/api/v1/internal"
    # None means "follow the environment": detailed errors only in dev
    debug_errors: Optional[bool] = None


class TaskhubConfig(BaseModel):
    """Root model for taskhub.yaml."""
    name: str = "taskhub"
    version: str = "1.0.0"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    security: SecurityConfig = SecurityConfig()
    api: APIConfig = APIConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v

    @property
    def debug_errors(self) -> bool:
        """Whether 500 responses may carry exception details."""
        if self.api.debug_errors is not None:
            return self.api.debug_errors
        return self.environment == "dev"


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[TaskhubConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for taskhub.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def _apply_env_overrides(data: Dict) -> Dict:
    """TASKHUB_DATABASE_URL and TASKHUB_ENV win over the file."""
    db_url = os.environ.get("TASKHUB_DATABASE_URL")
    if db_url:
        data.setdefault("database", {})
        data["database"]["url"] = db_url
    env = os.environ.get("TASKHUB_ENV")
    if env:
        data["environment"] = env
    return data


def load_config(config_path: Optional[str] = None) -> TaskhubConfig:
    """
    Load and validate taskhub.yaml.

    Args:
        config_path: Explicit path to taskhub.yaml. If None, auto-discovers.

    Returns:
        Validated TaskhubConfig instance. Defaults are used when no file exists.

    Raises:
        TaskhubConfigError: the file exists but is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    raw: Dict = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise TaskhubConfigError(f"Invalid YAML in {path}: {e}", config_path=str(path)) from e

    # taskhub.yaml nests name/version/environment under "platform"
    platform_data = raw.get("platform", {}) or {}
    config_data = {
        "name": platform_data.get("name", raw.get("name", "taskhub")),
        "version": platform_data.get("version", raw.get("version", "1.0.0")),
        "environment": platform_data.get("environment", raw.get("environment", "dev")),
        "database": dict(raw.get("database", {}) or {}),
        "logging": raw.get("logging", {}) or {},
        "security": raw.get("security", {}) or {},
        "api": raw.get("api", {}) or {},
    }
    config_data = _apply_env_overrides(config_data)

    try:
        _config = TaskhubConfig(**config_data)
    except ValidationError as e:
        raise TaskhubConfigError(f"Invalid configuration in {path}: {e}", config_path=str(path)) from e
    return _config


def get_config() -> TaskhubConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: TaskhubConfig) -> None:
    """Replace the loaded config (app factory and tests)."""
    global _config
    _config = config


def get_environment() -> str:
    """Get the current environment."""
    return get_config().environment
