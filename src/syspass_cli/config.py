#!/usr/bin/env python3
"""Configuration - Load and validate the syspass-cli JSON config file.

The resolved Config is passed explicitly to every component that needs it.
"""

import getpass
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Constants
DEFAULT_CONFIG_DIR = Path.home() / ".syspass"
DEFAULT_CONFIG = DEFAULT_CONFIG_DIR / "config.json"
USAGE_FILENAME = "usage.json"
PASSWORD_ENV = "SYSPASS_PASSWORD"
DEFAULT_PASSWORD_TIMEOUT = 10
SUPPORTED_API_VERSIONS = ("SyspassV2", "SyspassV3")

# JSON key -> (attribute, expected type)
CONFIG_KEYS = {
    "host": ("host", str),
    "token": ("token", str),
    "password": ("password", str),
    "verifyHost": ("verify_host", bool),
    "passwordTimeout": ("password_timeout", int),
    "apiVersion": ("api_version", str),
    "noShell": ("no_shell", bool),
    "noClipboard": ("no_clipboard", bool),
    "clearInBackground": ("clear_in_background", bool),
}


@dataclass
class Config:
    """Resolved client configuration."""

    host: str
    token: str
    password: str = ""
    verify_host: bool = True
    password_timeout: int = DEFAULT_PASSWORD_TIMEOUT
    api_version: Optional[str] = None
    no_shell: bool = False
    no_clipboard: bool = False
    clear_in_background: bool = False
    usage_path: Path = DEFAULT_CONFIG_DIR / USAGE_FILENAME
    config_path: Optional[Path] = None


def get_config_path(args_config=None):
    """Get config path from args or default."""
    return Path(args_config).expanduser() if args_config else DEFAULT_CONFIG


def get_password(prompt="API password: "):
    """Get the API password from environment variable or prompt.

    Checks SYSPASS_PASSWORD first for automation.
    Falls back to interactive getpass prompt if not set.
    """
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        return env_password
    return getpass.getpass(prompt)


def load_config(path=None) -> Config:
    """Load and validate the config file.

    Args:
        path: Config file path (default: ~/.syspass/config.json)

    Returns:
        Config object

    Raises:
        ConfigError: If the file is missing, unreadable or malformed

    """
    config_path = get_config_path(path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e.strerror}")
    except ValueError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}")

    config = parse_config(data)
    config.usage_path = config_path.parent / USAGE_FILENAME
    config.config_path = config_path
    logger.debug("Loaded config from %s (api: %s)", config_path, config.api_version or "default")
    return config


def parse_config(data) -> Config:
    """Build a Config from the decoded JSON document."""
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    values = {}
    for key, (attribute, expected) in CONFIG_KEYS.items():
        value = data.get(key)
        if value is None:
            continue
        # bool is a subclass of int
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(f"Config key '{key}' must be of type {expected.__name__}")
        values[attribute] = value

    for key in ("host", "token"):
        if not values.get(key):
            raise ConfigError(f"Config key '{key}' is required")

    if values.get("password_timeout", 0) < 0:
        raise ConfigError("Config key 'passwordTimeout' must not be negative")

    api_version = values.get("api_version")
    if api_version and api_version not in SUPPORTED_API_VERSIONS:
        raise ConfigError(
            f"No such API is supported ({api_version}), "
            f"expected one of: {', '.join(SUPPORTED_API_VERSIONS)}"
        )

    return Config(**values)
