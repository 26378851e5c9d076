"""Last-backup bookkeeping for change detection."""

from datetime import datetime
from typing import Dict, Optional, Set


class FileTracker:
    """Track when each file was last backed up successfully.

    State lives only in memory for the lifetime of the owning scheduler, so
    a fresh process uploads every file once before going incremental. Only
    the scheduler's own thread may mutate it.
    """

    def __init__(self):
        self._last_backup: Dict[str, datetime] = {}

    def get_last_backup(self, file_path: str) -> Optional[datetime]:
        """Get the recorded modification time of the last successful backup.

        Args:
            file_path: Absolute path of the file

        Returns:
            The recorded timestamp, or None if never backed up
        """
        return self._last_backup.get(file_path)

    def needs_backup(self, file_path: str, modified_time: datetime, full_mode: bool = False) -> bool:
        """Check if a file should be uploaded in this pass.

        Args:
            file_path: Absolute path of the file
            modified_time: Current modification time
            full_mode: Upload regardless of history

        Returns:
            True if the file is new, changed, or full mode is on
        """
        if full_mode:
            return True

        last_backup = self._last_backup.get(file_path)
        if last_backup is None:
            return True

        return modified_time > last_backup

    def record_backup(self, file_path: str, modified_time: datetime):
        """Remember a successful backup of ``file_path`` at ``modified_time``."""
        self._last_backup[file_path] = modified_time

    def get_tracked_files(self) -> Set[str]:
        """Get set of all tracked file paths."""
        return set(self._last_backup)

    def __len__(self) -> int:
        return len(self._last_backup)

    def __contains__(self, file_path: str) -> bool:
        return file_path in self._last_backup
