"""Tests for the stdlib logging dictConfig built from AppConfig."""

from __future__ import annotations

import structlog

from mediabridge.infrastructure.config.schema import AppConfig
from mediabridge.infrastructure.logging.setup import build_logging_config


def test_console_renderer_in_dev() -> None:
    cfg = build_logging_config(AppConfig())
    processors = cfg["formatters"]["structlog"]["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


def test_json_renderer_in_prod() -> None:
    cfg = build_logging_config(AppConfig(environment="prod"))
    processors = cfg["formatters"]["structlog"]["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_only_stderr_handler() -> None:
    cfg = build_logging_config(AppConfig())
    assert cfg["handlers"]["default"]["stream"] == "ext://sys.stderr"
    assert cfg["root"] == {"handlers": ["default"], "level": "INFO"}


def test_http_loggers_quiet_unless_debug() -> None:
    cfg = build_logging_config(AppConfig(log_level="INFO"))
    assert cfg["loggers"]["httpx"]["level"] == "WARNING"

    cfg = build_logging_config(AppConfig(log_level="DEBUG"))
    assert cfg["loggers"]["httpx"]["level"] == "DEBUG"
    assert cfg["loggers"]["httpcore"]["level"] == "DEBUG"
