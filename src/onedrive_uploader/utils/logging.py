"""Logging configuration and the backup logger facade."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from rich.console import Console


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured package logger
    """
    logger = logging.getLogger("onedrive_uploader")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"onedrive_uploader.{name}")


@runtime_checkable
class BackupLogger(Protocol):
    """Sink for backup progress events.

    Any object with these three methods can be passed as ``logger`` in
    :class:`~onedrive_uploader.config.settings.UploaderConfig`.
    """

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ConsoleLogger:
    """Default sink: prints every message to standard output as-is."""

    def __init__(self, console: Optional[Console] = None):
        # markup off so file names containing [brackets] print verbatim
        self.console = console or Console(markup=False, highlight=False, emoji=False)

    def _write(self, message: str):
        self.console.print(message, soft_wrap=True)

    def info(self, message: str):
        self._write(message)

    def warning(self, message: str):
        self._write(message)

    def error(self, message: str):
        self._write(message)


class StandardLogger:
    """Route backup events into a stdlib ``logging.Logger``."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("backup")

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)
