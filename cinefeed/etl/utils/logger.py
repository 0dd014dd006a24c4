"""Logging setup shared by the pipeline, the analytics service and the API.

Every logger writes to the console and to one dated log file per
top-level namespace (``logs/cinefeed_20240501.log``), so all areas of
a run end up in the same file.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOGGERS_CACHE: dict[str, logging.Logger] = {}
_FILE_HANDLERS: dict[Path, logging.FileHandler] = {}


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Return a configured, non-propagating logger.

    Loggers are cached by name: later calls ignore level and log_dir.

    Args:
        name: Dotted logger name (e.g. 'cinefeed.pipeline.reference').
        level: Logging level, LOG_LEVEL from settings when omitted.
        log_dir: Log directory, LOG_DIR from settings when omitted.

    Returns:
        Configured logger instance.
    """
    cached = _LOGGERS_CACHE.get(name)
    if cached is not None:
        return cached

    if level is None or log_dir is None:
        from cinefeed.settings import settings

        level = level if level is not None else settings.logging.level
        log_dir = log_dir if log_dir is not None else settings.logging.directory

    formatter = logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(_create_console_handler(formatter, level))

    file_handler = _shared_file_handler(name, formatter, log_dir)
    if file_handler is not None:
        logger.addHandler(file_handler)

    _LOGGERS_CACHE[name] = logger
    return logger


def _create_console_handler(
    formatter: logging.Formatter,
    level: int | str,
) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _shared_file_handler(
    name: str,
    formatter: logging.Formatter,
    log_dir: Path,
) -> logging.FileHandler | None:
    """File handler for the logger's namespace, created once per file.

    The handler logs every level; filtering happens on the logger.
    Returns None (after a warning on stderr) if the file cannot be opened.
    """
    log_path = _get_log_file_path(name, log_dir)
    handler = _FILE_HANDLERS.get(log_path)
    if handler is not None:
        return handler

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        print(f"Warning: could not open log file {log_path}: {e}", file=sys.stderr)
        return None

    handler.setFormatter(formatter)
    _FILE_HANDLERS[log_path] = handler
    return handler


def _get_log_file_path(name: str, log_dir: Path) -> Path:
    """Dated log file of the logger's top-level namespace."""
    namespace = name.split(".", 1)[0] or "cinefeed"
    date_suffix = datetime.now(timezone.utc).strftime("%Y%m%d")
    return log_dir / f"{namespace}_{date_suffix}.log"
