"""
Logging for the contour post-processing package.

Modules log through ``get_logger(__name__)``; only entry points (the CLI)
call ``setup_logging``, which attaches handlers to the root logger.

Usage:
    from ctcontours.utils.logging import get_logger, setup_logging

    logger = get_logger(__name__)
    setup_logging(level="INFO", log_file="/path/to/output/run.log")

    logger.debug("Windowed %d samples to [%s, %s]", n, low, high)
    logger.warning("Render failed, keeping previous raster: %s", err)
    logger.error("Failed to write artifact %s: %s", filename, err)

Numeric functions log at DEBUG. The layer that absorbs a recoverable
failure (lost render surface, sink write error) logs it at WARNING or ERROR.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',     # Cyan
    logging.INFO: '\033[32m',      # Green
    logging.WARNING: '\033[33m',   # Yellow
    logging.ERROR: '\033[31m',     # Red
    logging.CRITICAL: '\033[35m',  # Magenta
}
_RESET = '\033[0m'

_loggers: Dict[str, logging.Logger] = {}
_installed_handlers: List[logging.Handler] = []


class ColoredFormatter(logging.Formatter):
    """Colors the level name for terminal output."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        # Format a copy so file handlers see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{_RESET}"
        return super().format(colored)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` (usually ``__name__``), cached per name."""
    return _loggers.setdefault(name, logging.getLogger(name))


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def _console_handler(level: int, fmt: str, colored: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if colored and sys.stderr.isatty():
        handler.setFormatter(ColoredFormatter(fmt))
    else:
        handler.setFormatter(logging.Formatter(fmt))
    return handler


def _log_path(log_file, log_dir) -> Path:
    if log_file:
        return Path(log_file)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(log_dir) / f"ctcontours_{stamp}.log"


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    console: bool = True,
    colored: bool = True,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Attach console and/or file handlers to the root logger.

    Calling it again replaces the handlers installed by the previous call;
    handlers added by anything else (a host application, pytest) are kept.

    Args:
        level: Level name or number for the root logger and the handlers
        log_file: Append to this file
        log_dir: Write ``ctcontours_<timestamp>.log`` in this directory
        console: Log to stderr
        colored: Color level names when stderr is a terminal
        format_string: Record format (default: DEFAULT_FORMAT)

    Returns:
        Root logger instance
    """
    level = _resolve_level(level)
    fmt = format_string or DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    while _installed_handlers:
        old = _installed_handlers.pop()
        root_logger.removeHandler(old)
        old.close()

    handlers = []
    if console:
        handlers.append(_console_handler(level, fmt, colored))

    log_path = None
    if log_file or log_dir:
        log_path = _log_path(log_file, log_dir)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt))
        handlers.append(file_handler)

    for handler in handlers:
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)

    if log_path is not None:
        root_logger.info("Logging to file: %s", log_path)
    return root_logger


def _summarize(value):
    if isinstance(value, (list, tuple)) and len(value) > 5:
        return f"[{len(value)} items]"
    if isinstance(value, dict) and len(value) > 5:
        return f"{{{len(value)} keys}}"
    return value


def log_parameters(logger: logging.Logger, params: dict, title: str = "Parameters") -> None:
    """Log ``params`` one per line under a banner; long lists and dicts are summarized."""
    rule = "=" * 50
    logger.info(rule)
    logger.info(title)
    logger.info(rule)
    for key, value in params.items():
        logger.info("  %s: %s", key, _summarize(value))
    logger.info(rule)


def format_duration(seconds: float) -> str:
    if seconds >= 60:
        return f"{seconds / 60:.1f} minutes"
    if seconds >= 1:
        return f"{seconds:.1f} seconds"
    return f"{seconds * 1000:.0f} ms"


class ProcessingTimer:
    """
    Time a block and log its start and end.

    Example:
        with ProcessingTimer(logger, "render overlay") as timer:
            raster = draw_image_with_contours(image, contours)
        print(timer.duration)  # seconds
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.duration: Optional[float] = None
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.perf_counter()
        self.logger.log(self.level, "Starting: %s", self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self._start
        elapsed = format_duration(self.duration)
        if exc_type is None:
            self.logger.log(self.level, "Completed: %s in %s", self.operation, elapsed)
        else:
            self.logger.log(self.level, "Failed: %s after %s - %s", self.operation, elapsed, exc_val)
        return False
