"""
Configuration management with schema validation.

Precedence (lowest to highest):
    1. AuthSettings defaults
    2. YAML file (WEATHERLY_AUTH_CONFIG, default data/auth_settings.yaml)
    3. WEATHERLY_* environment variables (.env is loaded first)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from ..utils.exceptions import ConfigError

DEFAULT_DATA_DIR = Path("data")
DEFAULT_CONFIG_FILE = DEFAULT_DATA_DIR / "auth_settings.yaml"

# env var -> settings field
ENV_FIELDS = {
    "WEATHERLY_DATA_DIR": "data_dir",
    "WEATHERLY_USERS_NAMESPACE": "users_namespace",
    "WEATHERLY_SESSION_NAMESPACE": "session_namespace",
    "WEATHERLY_SESSION_TTL_HOURS": "session_ttl_hours",
    "WEATHERLY_RESET_TTL_MINUTES": "reset_ttl_minutes",
    "WEATHERLY_MIN_PASSWORD_LENGTH": "min_password_length",
    "WEATHERLY_LOCK_TIMEOUT_SECONDS": "lock_timeout_seconds",
}


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = Field(default="json", pattern="^(json|console)$")


class AuthSettings(BaseModel):
    """Engine settings"""
    data_dir: Path = DEFAULT_DATA_DIR
    users_namespace: str = Field(default="weatherly_auth", min_length=1)
    session_namespace: str = Field(default="weatherly_session", min_length=1)
    session_ttl_hours: float = Field(default=24, gt=0)
    reset_ttl_minutes: float = Field(default=15, gt=0)
    min_password_length: int = Field(default=8, ge=1)
    lock_timeout_seconds: float = Field(default=30, gt=0)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load settings from {path}: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return raw


def load_settings(config_path: Optional[Path] = None, env_file: Optional[Path] = None) -> AuthSettings:
    """Build AuthSettings from defaults, the YAML file and the environment."""
    load_dotenv(env_file)

    if config_path is None:
        config_path = Path(os.getenv("WEATHERLY_AUTH_CONFIG", str(DEFAULT_CONFIG_FILE)))

    data: Dict[str, Any] = {}
    if config_path.exists():
        data.update(_read_yaml(config_path))

    for env_name, field_name in ENV_FIELDS.items():
        value = os.getenv(env_name)
        if value is not None and value.strip():
            data[field_name] = value.strip()

    log_level = os.getenv("WEATHERLY_LOG_LEVEL")
    log_format = os.getenv("WEATHERLY_LOG_FORMAT")
    if log_level or log_format:
        logging_data = dict(data.get("logging") or {})
        if log_level:
            logging_data["level"] = log_level
        if log_format:
            logging_data["format"] = log_format
        data["logging"] = logging_data

    try:
        return AuthSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}")
