"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

from mediabridge.infrastructure.common.constants import DEFAULT_USER_AGENT

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "mediabridge",
    "environment": "dev",
    "plugins": {
        "plugin_dir": "./plugins",
        "enabled": True,
        "each_error_policy": "swallow",
        "http_timeout_seconds": 30.0,
        "extract_timeout_seconds": 60.0,
    },
    "http": {
        "timeout_seconds": 15.0,
        "user_agent": DEFAULT_USER_AGENT,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "providers": {
        "flixhq": {"enabled": True},
        "sflix": {"enabled": True},
    },
}
