"""Configuration loading and validation."""

import logging
import os
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv


DEFAULT_CONFIG: dict[str, Any] = {
    "command": {
        "token": "",
        "token_secret_id": "",
        "token_secret_key": "token",
        "heading": "Daily log",
        "tag": "log",
        "timezone": "",  # empty = host local time
    },
    "aws": {
        "region": "us-east-1",
    },
    "logging": {
        "level": "INFO",
    },
}

DEFAULT_CONFIG_PATH = "~/.daylog/config.yaml"
DEFAULT_ENV_FILE = "~/.daylog/.env"

# env var -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DAYLOG_COMMAND_TOKEN": ("command", "token"),
    "DAYLOG_TOKEN_SECRET_ID": ("command", "token_secret_id"),
    "DAYLOG_TIMEZONE": ("command", "timezone"),
    "DAYLOG_LOG_LEVEL": ("logging", "level"),
    "AWS_REGION": ("aws", "region"),
}


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """Load config from ~/.daylog/config.yaml with defaults and env overrides.

    Args:
        config_path: Override path to config file. Defaults to $DAYLOG_CONFIG,
            then ~/.daylog/config.yaml.

    Returns:
        Merged configuration dictionary.

    Raises:
        ConfigError: If config file exists but is invalid, or the merged
            result fails validation.
    """
    env_file = Path(DEFAULT_ENV_FILE).expanduser()
    if env_file.exists():
        load_dotenv(env_file)

    if config_path is None:
        config_path = os.getenv("DAYLOG_CONFIG", DEFAULT_CONFIG_PATH)

    path = Path(config_path).expanduser()
    config = _deep_copy(DEFAULT_CONFIG)

    if path.exists():
        try:
            with open(path) as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if user_config is not None:
            if not isinstance(user_config, dict):
                raise ConfigError(
                    f"Config file {path} must be a YAML mapping (got {type(user_config).__name__})"
                )
            _deep_merge(config, user_config)

    _apply_env(config)
    _validate(config)

    return config


def _apply_env(config: dict[str, Any]) -> None:
    """Apply environment variable overrides (mutates config)."""
    for var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            config.setdefault(section, {})[key] = value


def _validate(config: dict[str, Any]) -> None:
    """Validate config after merge."""
    command = config.get("command", {})
    if not isinstance(command, dict):
        raise ConfigError("command must be a mapping")
    if not command.get("heading"):
        raise ConfigError("command.heading is required")
    if not command.get("tag"):
        raise ConfigError("command.tag is required")

    tz = command.get("timezone") or ""
    if tz:
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"command.timezone is not a known timezone: {tz!r}") from e

    level = str(config.get("logging", {}).get("level", "")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"logging.level is not a valid level: {level!r}")


def _deep_copy(d: dict) -> dict:
    """Simple deep copy for nested dicts/lists."""
    out: dict = {}
    for k, v in d.items():
        if isinstance(v, dict):
            out[k] = _deep_copy(v)
        elif isinstance(v, list):
            out[k] = v[:]
        else:
            out[k] = v
    return out


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
