"""Structured logging setup shared by the library and the CLI.

Library modules only call :func:`get_logger`; the command line entry point
calls :func:`configure_logging` once. Events are snake_case names with
keyword context so that JSON output stays machine readable.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, cast

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars
from structlog.stdlib import BoundLogger

__all__ = [
    "LogFormat",
    "LogConfig",
    "DEFAULT_LOG_LEVEL",
    "configure_logging",
    "bind_global_context",
    "reset_global_context",
    "get_logger",
]


class LogFormat(str, Enum):
    """Supported output formats for the renderer."""

    JSON = "json"
    KEY_VALUE = "key_value"


DEFAULT_LOG_LEVEL = logging.INFO

_DEFAULT_LOGGER_NAME: Final[str] = "compound_cache"

_KEY_ORDER: Sequence[str] = (
    "timestamp",
    "level",
    "logger",
    "message",
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """User configurable logging parameters."""

    level: int | str = DEFAULT_LOG_LEVEL
    format: LogFormat = LogFormat.JSON


def _coerce_log_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    mapped_level = logging.getLevelNamesMapping().get(level.upper())
    if mapped_level is None:
        raise ValueError(f"Unsupported log level: {level}")
    return mapped_level


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.EventRenamer("message"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer_for(format: LogFormat) -> Any:
    if format is LogFormat.KEY_VALUE:
        return structlog.processors.KeyValueRenderer(
            key_order=_KEY_ORDER,
            sort_keys=False,
            drop_missing=True,
        )
    return structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False)


def configure_logging(config: LogConfig | None = None) -> None:
    """Initialise logging based on the supplied configuration."""

    cfg = config or LogConfig()
    shared_processors = _shared_processors()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer_for(LogFormat(cfg.format)),
        ],
    )

    # stderr keeps command output on stdout parseable
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logging.basicConfig(handlers=[handler], level=_coerce_log_level(cfg.level), force=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_global_context(**kwargs: Any) -> None:
    """Bind context that should appear on every log line going forward."""

    bind_contextvars(**kwargs)


def reset_global_context() -> None:
    """Clear previously bound global context."""

    clear_contextvars()


def get_logger(name: str = _DEFAULT_LOGGER_NAME) -> BoundLogger:
    """Return a bound logger for ``name``."""

    return cast(BoundLogger, structlog.get_logger(name))
