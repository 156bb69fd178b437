from __future__ import annotations

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

import structlog

from mediabridge.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# Chatty third-party loggers that stay at WARNING unless DEBUG is requested.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _add_record_created_timestamp_utc(
    _: Any, __: Any, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """
    Stamp foreign (stdlib) LogRecords with the time they were created.

    ProcessorFormatter sets event_dict["_record"] for foreign records.
    """
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = dt.isoformat().replace("+00:00", "Z")
    return event_dict


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """
    Build a dictConfig that renders every record through structlog.

    Everything goes to stderr; stdout is reserved for command output.
    """
    level = config.log_level
    quiet_level = level if level == "DEBUG" else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": [
                    structlog.contextvars.merge_contextvars,
                    _add_record_created_timestamp_utc,
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                ],
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(config),
                ],
            },
        },
        "handlers": {
            "default": {
                "formatter": "structlog",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"level": quiet_level, "propagate": True} for name in _QUIET_LOGGERS
        },
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """
    Configure structlog + stdlib logging.

    Returns the applied dictConfig (useful for debugging/inspection).
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            # Timestamp at log-call time for structlog-originated events
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)

    log.debug(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg
