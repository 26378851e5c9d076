"""Utility functions and helpers."""

from .file_utils import FileHelper
from .logging import BackupLogger, ConsoleLogger, StandardLogger, setup_logging

__all__ = ["BackupLogger", "ConsoleLogger", "FileHelper", "StandardLogger", "setup_logging"]
