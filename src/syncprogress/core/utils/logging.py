"""
Logging setup for syncprogress.

- `setup_logging(...)` installs a console handler and a rotating file handler
  on the root logger. Calling it again replaces only the handlers it
  installed itself, so handlers owned by the host application stay put.
- `setup_logging_from_config(config)` does the same using the level stored
  in `SyncConfig`.
- `shutdown_logging()` removes those handlers again.
- Modules get their logger via `get_logger(__name__)`.

The log file lives under the per-user config directory (platformdirs, app
name "syncprogress"), in a "logs" subfolder, unless `log_dir` is given.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from platformdirs import user_config_dir

if TYPE_CHECKING:
    from syncprogress.core.app_config import SyncConfig

# Must match the app name used by app_config.py.
APP_NAME = "syncprogress"
LOG_FILENAME = "syncprogress.log"

CONSOLE_FORMAT = "[%(levelname)s] %(name)s:%(funcName)s:%(lineno)d: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_FILE_PATH: Optional[Path] = None
_INSTALLED_HANDLERS: List[logging.Handler] = []


def resolve_level(level: Union[str, int]) -> int:
    """Turn "debug"/"INFO"/logging.WARNING into a numeric level (INFO if unknown)."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def default_log_dir() -> Path:
    return Path(user_config_dir(APP_NAME)) / "logs"


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    # the file always gets everything
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def shutdown_logging() -> None:
    """Remove and close the handlers installed by `setup_logging()`."""
    global _LOG_FILE_PATH
    root = logging.getLogger()
    while _INSTALLED_HANDLERS:
        handler = _INSTALLED_HANDLERS.pop()
        root.removeHandler(handler)
        handler.close()
    _LOG_FILE_PATH = None


def setup_logging(
    level: Union[str, int] = "INFO",
    *,
    log_dir: Optional[Path] = None,
    max_bytes: int = 5_000_000,
    backup_count: int = 5,
    log_to_file: bool = True,
) -> Optional[Path]:
    """
    Install console (and optionally rotating file) logging on the root logger.

    Parameters
    ----------
    level:
        Console level, name or number.
    log_dir:
        Directory for the log file. Defaults to `default_log_dir()`.
    max_bytes:
        Size at which the log file is rotated.
    backup_count:
        Number of rotated files kept.
    log_to_file:
        Set to False for console-only logging.

    Returns
    -------
    Path of the log file, or None when file logging is off.
    """
    global _LOG_FILE_PATH

    console_level = resolve_level(level)
    shutdown_logging()

    root = logging.getLogger()
    handlers = [_console_handler(console_level)]
    if log_to_file:
        log_dir = log_dir or default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        _LOG_FILE_PATH = log_dir / LOG_FILENAME
        handlers.append(_file_handler(_LOG_FILE_PATH, max_bytes, backup_count))

    for handler in handlers:
        root.addHandler(handler)
        _INSTALLED_HANDLERS.append(handler)

    # Root must let DEBUG through for the file handler; handlers filter further.
    root.setLevel(min(console_level, logging.DEBUG) if log_to_file else console_level)
    return _LOG_FILE_PATH


def setup_logging_from_config(config: "SyncConfig", **kwargs) -> Optional[Path]:
    """`setup_logging()` at the level stored in `config.log_level`."""
    return setup_logging(config.log_level, **kwargs)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for `name`, or the package logger 'syncprogress' when None."""
    return logging.getLogger(name or APP_NAME)


def get_log_file_path() -> Optional[Path]:
    """Path of the current log file, or None before file logging was set up."""
    return _LOG_FILE_PATH
