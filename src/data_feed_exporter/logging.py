"""Logging helpers for consistent structured context."""

from __future__ import annotations

import json
import logging
import logging.config
from contextlib import contextmanager
from time import monotonic
from typing import TYPE_CHECKING, Any, Dict, Iterator

if TYPE_CHECKING:
    from .config import AddressTarget
    from .settings import AppSettings

_DEFAULT_LOG_KEYS = set(logging.makeLogRecord({}).__dict__.keys())
_EXCLUDED_EXTRA_KEYS = {"message", "asctime", "color_message"}
LEVEL_COLORS = {
    "DEBUG": "\033[90m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
TIMESTAMP_COLOR = "\033[36m"
RESET = "\033[0m"


def get_logger(name: str) -> logging.Logger:
    """Return a module-scoped logger."""

    return logging.getLogger(name)


def extract_log_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return a dictionary of non-default attributes attached via `extra`."""

    context: Dict[str, Any] = {}

    for key, value in record.__dict__.items():
        if key in _DEFAULT_LOG_KEYS or key in _EXCLUDED_EXTRA_KEYS or key.startswith("_"):
            continue

        context[key] = value

    return context


def build_log_extra(
    *,
    job: str | None = None,
    target: AddressTarget | None = None,
    elapsed: float | None = None,
    additional: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    """Construct an `extra` dict for structured logging."""
    extra: Dict[str, Any] = {}

    if job is not None:
        extra["job"] = job

    if target is not None:
        extra["target_name"] = target.display_name
        extra["target_contract"] = target.contract_address
        extra["target_from"] = target.source_address
        extra["target_to"] = target.destination_address

    if elapsed is not None:
        extra["elapsed_seconds"] = round(elapsed, 3)

    if additional:
        extra.update(additional)

    return extra


@contextmanager
def log_duration(
    logger: logging.Logger,
    message: str,
    *,
    level: int = logging.DEBUG,
    extra: Dict[str, Any] | None = None,
) -> Iterator[None]:
    """Log ``message`` with ``elapsed_seconds`` once the block exits, even on error."""

    start = monotonic()
    try:
        yield
    finally:
        elapsed = monotonic() - start
        log_extra = dict(extra or {})
        log_extra["elapsed_seconds"] = round(elapsed, 3)
        logger.log(level, message, extra=log_extra)


def resolve_color_message(record: logging.LogRecord, color_message: str | None) -> str | None:
    """Interpolate uvicorn's ``color_message`` with the record's arguments."""
    if not color_message or not record.args:
        return color_message

    try:
        return color_message % record.args
    except (TypeError, ValueError):
        return color_message


def _render_context(context: Dict[str, Any]) -> str:
    return " ".join(f"{key}={context[key]}" for key in sorted(context))


def _paint(text: str, color: str) -> str:
    return f"{color}{text}{RESET}"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: core fields merged with the ``extra`` context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            payload["stack_info"] = record.stack_info

        payload.update(extract_log_context(record))

        return json.dumps(payload, default=str)


class StructuredTextFormatter(logging.Formatter):
    """Plain text lines followed by `` | key=value`` context, sorted by key.

    With colour enabled the timestamp and level name are wrapped in ANSI
    codes, and uvicorn's ``color_message`` replaces the plain message.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        *,
        color_enabled: bool = True,
    ) -> None:
        super().__init__(fmt, datefmt, style)
        self.color_enabled = color_enabled

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        if self.color_enabled:
            line = self._colorize(line, record)

        context = extract_log_context(record)

        if context:
            line = f"{line} | {_render_context(context)}"

        return line

    def _colorize(self, line: str, record: logging.LogRecord) -> str:
        color_message = resolve_color_message(record, getattr(record, "color_message", None))

        if color_message:
            plain_message = record.getMessage()
            line = line.replace(plain_message, color_message, 1) if plain_message in line else f"{line} {color_message}"

        timestamp = self.formatTime(record, self.datefmt)
        line = line.replace(timestamp, _paint(timestamp, TIMESTAMP_COLOR), 1)

        level_color = getattr(record, "levelcolor", "") or LEVEL_COLORS.get(record.levelname, "")

        if level_color:
            line = line.replace(record.levelname, _paint(record.levelname, level_color), 1)

        return line


def configure_logging(settings: AppSettings) -> None:
    """Configure root and uvicorn loggers based on application settings."""
    log_level = settings.logging.level
    log_format = settings.logging.format

    if log_level not in logging.getLevelNamesMapping():
        log_level = "INFO"

    if log_format == "json":
        formatter_config = {
            "()": JsonFormatter,
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        }
    else:
        formatter_config = {
            "()": StructuredTextFormatter,
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            "color_enabled": settings.logging.color_enabled,
        }

    uvicorn_logger = {
        "handlers": ["default"],
        "level": log_level,
        "propagate": False,
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": formatter_config},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                }
            },
            "root": {"level": log_level, "handlers": ["default"]},
            "loggers": {
                "uvicorn": dict(uvicorn_logger),
                "uvicorn.error": dict(uvicorn_logger),
                "uvicorn.access": dict(uvicorn_logger),
            },
        }
    )


__all__ = [
    "JsonFormatter",
    "StructuredTextFormatter",
    "build_log_extra",
    "configure_logging",
    "extract_log_context",
    "get_logger",
    "log_duration",
    "resolve_color_message",
]
