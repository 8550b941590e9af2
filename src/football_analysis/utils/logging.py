"""Logging setup for the engine, storage layer and CLI.

Console output goes to stderr so that commands printing JSON keep stdout
clean. A daily log file captures everything at DEBUG.

Usage:
    from football_analysis.utils import get_logger

    logger = get_logger(__name__)
    logger.info("Aggregated 38 fixtures")
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from ..config import get_settings

ROOT_LOGGER = "football_analysis"

CONSOLE_FORMAT = "%(asctime)s | %(levelname_colored)s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"

# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

_logging_configured = False


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color:
            color = self.COLORS.get(record.levelname, "")
            record.levelname_colored = f"{color}{record.levelname:8}{self.RESET}"
        else:
            record.levelname_colored = f"{record.levelname:8}"
        return super().format(record)


def _console_handler(level: str) -> logging.Handler:
    stream = sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setLevel(level.upper())
    handler.setFormatter(ColoredFormatter(
        CONSOLE_FORMAT,
        datefmt="%H:%M:%S",
        use_color=hasattr(stream, "isatty") and stream.isatty(),
    ))
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"football_analysis_{date.today():%Y-%m-%d}.log"

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    name: str = ROOT_LOGGER,
    level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Attach console and optional file handlers to the root logger once.

    Args:
        name: Logger to return
        level: Console level. Defaults to settings.log_level.
        log_to_file: Write a daily log file. Defaults to settings.log_to_file.
        log_dir: Directory for log files. Defaults to settings.logs_dir.

    Returns:
        The named logger
    """
    global _logging_configured

    if not _logging_configured:
        settings = get_settings()
        level = level or settings.log_level
        log_to_file = settings.log_to_file if log_to_file is None else log_to_file

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # Filtering happens per handler
        root_logger.addHandler(_console_handler(level))
        if log_to_file:
            root_logger.addHandler(_file_handler(log_dir or settings.logs_dir))

        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

        _logging_configured = True

    return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, configuring logging on first use.

    Engine modules use ``logging.getLogger(__name__)`` directly and leave
    handler setup to the application; scripts and the CLI go through here.
    """
    if not _logging_configured:
        setup_logging()
    return logging.getLogger(name)
