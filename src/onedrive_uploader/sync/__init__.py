"""Backup scheduling and change tracking."""

from .backup_scheduler import BackupScheduler, PassResult
from .file_tracker import FileTracker

__all__ = ["BackupScheduler", "FileTracker", "PassResult"]
