"""Workflow tracker real-time core configuration.

Loads settings from two YAML files:
  * workflow.settings.yaml  — non-secret configuration
  * workflow.secrets.yaml   — secrets (never committed)

Relative database paths are resolved against the directory holding the
settings file so the service can be started from any working directory.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("workflow.settings.yaml")
SECRETS_FILE  = Path("workflow.secrets.yaml")

IN_MEMORY_DB = ":memory:"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class JWTSecrets(BaseModel):
    secret_key: str = "secret_dev"


class Secrets(BaseModel):
    jwt: JWTSecrets = Field(default_factory=JWTSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str  = "0.0.0.0"
    port:            int  = 4000
    reload:          bool = False
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class DatabaseSettings(BaseModel):
    path: str = "workflow.duckdb"


class AuthSettings(BaseModel):
    algorithm:            str = "HS256"
    token_expire_minutes: int = 60 * 8

    @field_validator("token_expire_minutes")
    @classmethod
    def _positive_lifetime(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("token_expire_minutes must be positive")
        return v


class ChatSettings(BaseModel):
    """Chat delivery knobs.

    ``history_limit`` is a ceiling: clients can never ask for more.
    """
    public_room:   str = "general"
    history_limit: int = Field(default=50, ge=1, le=50)
    preview_chars: int = Field(default=30, ge=1)


class NotificationSettings(BaseModel):
    list_limit: int = Field(default=50, ge=1)


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:        ServerSettings       = Field(default_factory=ServerSettings)
    database:      DatabaseSettings     = Field(default_factory=DatabaseSettings)
    auth:          AuthSettings         = Field(default_factory=AuthSettings)
    chat:          ChatSettings         = Field(default_factory=ChatSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    logging:       LoggingSettings      = Field(default_factory=LoggingSettings)
    secrets:       Secrets              = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def _resolve_db_path(raw: str, base_dir: Path) -> str:
    if raw == IN_MEMORY_DB:
        return raw
    path = Path(raw)
    if path.is_absolute():
        return str(path)
    return str(base_dir / path)


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    if secrets_path is None:
        secrets_path = settings_path.parent / SECRETS_FILE.name
    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(Path(secrets_path))

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)
    config.database.path = _resolve_db_path(
        config.database.path, settings_path.resolve().parent
    )
    logger.info(
        "Settings loaded (server=%s:%s, database=%s)",
        config.server.host,
        config.server.port,
        config.database.path,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Replace (or clear, with None) the process-wide config."""
    global _config
    _config = config
