"""Structured logging for :mod:`nococli`.

Console output goes through Rich on stderr so JSON written to stdout stays
parseable. An optional rotating JSON log can be written under the config
directory. Credential values (``xc-token`` and friends) are masked before any
handler sees them, including inside header mappings.
"""

from __future__ import annotations

import gzip
import logging
import os
import shutil
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping, MutableMapping

import structlog
from rich.console import Console
from rich.logging import RichHandler

Logger = structlog.stdlib.BoundLogger

LOG_LEVEL_ENV = "NOCO_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FILENAME = "nococli.log"

_ROTATION_BACKUP_COUNT = 7
_REDACTED = "***"
_SECRET_KEYS = frozenset({"xc-token", "xc-auth", "token", "authorization"})

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)


def _mask(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: _REDACTED if str(key).lower() in _SECRET_KEYS else _mask(item)
            for key, item in value.items()
        }
    return value


def redact_secrets(
    _logger: Any,
    _method: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credential values in ``event_dict``.

    Example:
        >>> redact_secrets(None, "info", {"headers": {"xc-token": "abc"}})
        {'headers': {'xc-token': '***'}}
    """

    for key, value in list(event_dict.items()):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = _REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = _mask(value)
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _TIMESTAMPER,
        redact_secrets,
    ]


def resolve_log_level(
    option: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> str:
    """Return the level name from ``option``, ``NOCO_LOG_LEVEL`` or the default."""

    environ = os.environ if env is None else env
    return option or environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL


def _level_number(level: str) -> int:
    name = level.strip().upper()
    value = logging.getLevelName(name)
    # ``getLevelName`` echoes unknown names back as "Level <name>".
    if not isinstance(value, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as target:
        shutil.copyfileobj(src, target)
    Path(source).unlink(missing_ok=True)


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_pre_chain(),
    )


def _file_handler(directory: Path, level: int) -> TimedRotatingFileHandler:
    """Daily-rotating JSON log; archives are gzip-compressed, a week kept."""

    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / LOG_FILENAME,
        when="midnight",
        backupCount=_ROTATION_BACKUP_COUNT,
        utc=True,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.suffix = "%Y-%m-%d"
    handler.namer = lambda name: f"{name}.gz"
    handler.rotator = _gzip_rotator
    handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(sort_keys=True))
    )
    return handler


def _console_handler(level: int, console: Console | None) -> RichHandler:
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    return handler


def _install(root: logging.Logger, handlers: Iterable[logging.Handler]) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)


def configure_logging(
    *,
    level: str = DEFAULT_LOG_LEVEL,
    log_dir: str | Path | None = None,
    console: Console | None = None,
) -> None:
    """Route structlog through stdlib logging with Rich and optional JSON file output.

    Args:
        level: Level name for the root logger (case-insensitive).
        log_dir: Directory receiving ``nococli.log``; no file log when ``None``.
        console: Rich console override, mostly for tests.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """

    number = _level_number(level)

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [_console_handler(number, console)]
    if log_dir is not None:
        directory = Path(log_dir).expanduser().resolve(strict=False)
        handlers.append(_file_handler(directory, number))

    root = logging.getLogger()
    root.setLevel(number)
    _install(root, handlers)
    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structlog logger bound to ``initial_context``.

    Example:
        >>> logger = get_logger(__name__, component="config-manager")
        >>> isinstance(logger, structlog.stdlib.BoundLogger)
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LOG_FILENAME",
    "LOG_LEVEL_ENV",
    "Logger",
    "configure_logging",
    "get_logger",
    "redact_secrets",
    "resolve_log_level",
]
