"""Log files for sceval.

Two rotating files live in the log directory (``~/.sceval/logs`` unless
``SCEVAL_LOG_DIR`` or ``log_dir`` say otherwise):

``sceval.log``
    Application records, mirrored on the console when requested.
``engine.log``
    The JSON-RPC traffic pygls logs while talking to sclang. Only written
    when engine tracing is on (``debug_logging`` in the settings); otherwise
    pygls is held at WARNING and whatever it emits lands in ``sceval.log``.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["LogFiles", "active_log_files", "resolve_log_dir", "setup_logging"]

APP_LOG_NAME = "sceval.log"
ENGINE_LOG_NAME = "engine.log"
ENGINE_LOGGER = "pygls"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True, frozen=True)
class LogFiles:
    """Where the current logging configuration writes."""

    app: Path
    engine: Path | None = None


_active: LogFiles | None = None
_engine_handler: logging.Handler | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    trace_engine: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> LogFiles:
    """Install the root handlers and route engine traffic; idempotent unless ``force``."""

    global _active
    if _active is not None and not force:
        return _active

    directory = resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    handlers: list[logging.Handler] = [
        _rotating_handler(directory / APP_LOG_NAME, level, formatter, max_bytes, backup_count)
    ]
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    engine_path = directory / ENGINE_LOG_NAME if trace_engine else None
    _route_engine_logger(engine_path, level, formatter, max_bytes, backup_count)

    _active = LogFiles(app=directory / APP_LOG_NAME, engine=engine_path)
    return _active


def active_log_files() -> LogFiles | None:
    """Return the files written by the last :func:`setup_logging` call."""

    return _active


def resolve_log_dir(log_dir: Path | str | None = None) -> Path:
    return Path(log_dir or os.environ.get("SCEVAL_LOG_DIR") or Path.home() / ".sceval" / "logs").expanduser()


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _route_engine_logger(
    path: Path | None,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> None:
    global _engine_handler
    logger = logging.getLogger(ENGINE_LOGGER)
    if _engine_handler is not None:
        logger.removeHandler(_engine_handler)
        _engine_handler.close()
        _engine_handler = None

    if path is None:
        logger.setLevel(max(level, logging.WARNING))
        logger.propagate = True
        return

    _engine_handler = _rotating_handler(path, logging.DEBUG, formatter, max_bytes, backup_count)
    logger.addHandler(_engine_handler)
    logger.setLevel(logging.DEBUG)
    # Traffic is verbose; keep it out of the application log.
    logger.propagate = False
