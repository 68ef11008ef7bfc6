"""
Configuration – one immutable :class:`TailConfig` built from
defaults <- YAML file <- environment <- command line (highest priority).
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .errors import ConfigError
from .fieldpath import FieldPath
from .models import as_utc, utcnow

logger = logging.getLogger(__name__)

ENV_PREFIX = "LOGTAIL_"
API_KEY_ENV = "DD_API_KEY"
APP_KEY_ENV = "DD_APP_KEY"
CONFIG_ENV = "LOGTAIL_CONFIG"


class TailConfig(BaseModel):
    """Everything a run needs, passed explicitly into the engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str = Field(min_length=1)
    domain: str = "api.datadoghq.eu"
    api_key: SecretStr
    app_key: SecretStr

    output_mode: Literal["file", "stdout"] = "file"
    split_key: Optional[str] = None
    default_output: str = Field(default="output.log", min_length=1)
    output_dir: Path = Path(".")
    format_file: Optional[Path] = None
    structured: bool = False

    history_seconds: int = Field(default=60, ge=0)
    from_timestamp: Optional[datetime] = None
    poll_interval: float = Field(default=5.0, ge=0)
    overlap_seconds: float = Field(default=10.0, ge=0)

    page_limit: int = Field(default=1000, ge=1, le=5000)
    max_pages: int = Field(default=100, ge=1)
    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)

    log_level: str = "INFO"

    @field_validator("split_key")
    @classmethod
    def _valid_split_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return str(FieldPath.parse(value))

    @field_validator("from_timestamp")
    @classmethod
    def _past_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        value = as_utc(value)
        if value >= utcnow():
            raise ValueError(f"start time {value.isoformat()} is not in the past")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def one_shot(self) -> bool:
        return self.from_timestamp is not None


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping of option names to values."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    """Pick ``LOGTAIL_<FIELD>`` variables for known fields."""
    out: Dict[str, Any] = {}
    for name in TailConfig.model_fields:
        if name in ("api_key", "app_key"):
            continue
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            out[name] = raw
    return out


def load_config(
    cli: Optional[Mapping[str, Any]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    dotenv: bool = True,
) -> TailConfig:
    """Build a :class:`TailConfig`; raises :class:`ConfigError` when invalid."""
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    kwargs: Dict[str, Any] = {}

    config_path = config_path or (Path(env[CONFIG_ENV]) if env.get(CONFIG_ENV) else None)
    if config_path is not None:
        kwargs.update(load_yaml(config_path))
        logger.debug("Loaded config file %s", config_path)

    kwargs.update(env_overrides(env))
    for key, env_name in (("api_key", API_KEY_ENV), ("app_key", APP_KEY_ENV)):
        if env.get(env_name):
            kwargs[key] = env[env_name]

    kwargs.update({k: v for k, v in (cli or {}).items() if v is not None})

    for key, env_name in (("api_key", API_KEY_ENV), ("app_key", APP_KEY_ENV)):
        if not kwargs.get(key):
            raise ConfigError(f"Expected {env_name} env var")

    try:
        return TailConfig(**kwargs)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
