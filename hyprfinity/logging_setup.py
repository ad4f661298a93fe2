"""Logging setup and utilities."""

import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from .constants import DEBUG_LOG_ENV_VAR, DEFAULT_DEBUG_LOG_PATH, FALLBACK_DEBUG_LOG_PATH

__all__ = [
    "LogObjects",
    "get_logger",
    "init_logger",
    "is_debug",
    "resolve_debug_log_path",
    "set_debug",
]

_ESC = "\x1b["
_RESET = f"{_ESC}0m"
_WARNING_STYLE = f"{_ESC}33;2m"
_ERROR_STYLE = f"{_ESC}31;2m"
_CRITICAL_STYLE = f"{_ESC}31;1m"


class _DebugState:
    """Container for mutable debug state to avoid global statement."""

    value: bool = bool(os.environ.get("DEBUG"))


_debug_state = _DebugState()


def is_debug() -> bool:
    """Return the current debug state."""
    return _debug_state.value


def set_debug(value: bool) -> None:
    """Set the debug state."""
    _debug_state.value = value


def should_colorize(stream: TextIO | None = None) -> bool:
    """Determine if ANSI colors should be used for the given stream.

    Respects NO_COLOR, FORCE_COLOR and TTY detection.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if stream is None:
        stream = sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


class LogObjects:
    """Reusable objects for loggers."""

    handlers: list[logging.Handler] = []


class ScreenLogFormatter(logging.Formatter):
    """A custom formatter, adding colors based on log level."""

    def __init__(self, detailed: bool = False) -> None:
        super().__init__()
        log_format = r"%(name)15s - %(message)s // %(filename)s:%(lineno)d" if detailed else r"Hyprfinity: %(message)s"
        if should_colorize():
            styles = {logging.WARNING: _WARNING_STYLE, logging.ERROR: _ERROR_STYLE, logging.CRITICAL: _CRITICAL_STYLE}
        else:
            styles = {}
        self._formatters = {
            level: logging.Formatter(styles[level] + log_format + _RESET if level in styles else log_format)
            for level in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL)
        }

    def format(self, record: logging.LogRecord) -> str:
        return self._formatters.get(record.levelno, self._formatters[logging.INFO]).format(record)


def resolve_debug_log_path(path_override: str | None = None) -> Path:
    """Return the debug log path: explicit override, then environment, then the default."""
    if path_override:
        return Path(path_override)
    env_path = os.environ.get(DEBUG_LOG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(DEFAULT_DEBUG_LOG_PATH)


def _open_file_handler(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="w", encoding="utf-8")


def init_logger(filename: str | Path | None = None, force_debug: bool = False, verbose: bool = False) -> Path | None:
    """Initialize the logging system.

    Debug records always reach the log file; the screen only shows them when
    `verbose` or `force_debug` is set.

    Args:
        filename: Optional debug log file, truncated on open. Falls back to
            FALLBACK_DEBUG_LOG_PATH when it can't be opened.
        force_debug: If True, force debug level
        verbose: If True, print debug records on screen

    Returns:
        The path of the opened log file, if any
    """
    screen_debug = force_debug or verbose
    if screen_debug or filename:
        set_debug(True)

    LogObjects.handlers.clear()
    opened: Path | None = None
    if filename:
        path = Path(filename)
        try:
            file_handler = _open_file_handler(path)
        except OSError as e:
            fallback = Path(FALLBACK_DEBUG_LOG_PATH)
            print(f"Hyprfinity: Failed to open debug log at {path} ({e}), falling back to {fallback}", file=sys.stderr)
            file_handler = _open_file_handler(fallback)
            path = fallback
        file_handler.setFormatter(logging.Formatter(fmt=r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"))
        LogObjects.handlers.append(file_handler)
        opened = path
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG if screen_debug else logging.INFO)
    stream_handler.setFormatter(ScreenLogFormatter(detailed=screen_debug))
    LogObjects.handlers.append(stream_handler)
    return opened


def get_logger(name: str = "hyprfinity", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)

    Returns:
        The logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        logger.setLevel(logging.DEBUG if is_debug() else logging.INFO)
    else:
        logger.setLevel(level)
    logger.propagate = False
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.debug('Logger "%s" initialized', name)
    return logger
