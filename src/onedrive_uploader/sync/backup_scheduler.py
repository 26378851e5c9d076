"""Periodic backup of local paths into the OneDrive folder."""

import threading
from dataclasses import dataclass, field
from typing import List, Optional

from ..config.settings import UploaderConfig
from ..exceptions import SchedulerError
from ..utils.file_utils import FileHelper
from ..utils.logging import BackupLogger, ConsoleLogger
from .file_tracker import FileTracker


@dataclass
class PassResult:
    """Outcome of one backup pass."""
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed


class BackupScheduler:
    """Run a backup pass now and then once per configured interval.

    One daemon thread per instance. Passes run sequentially on that thread
    and never overlap; a slow pass simply delays the next one. ``start`` and
    ``stop`` must be called from the owning thread.
    """

    def __init__(self, config: UploaderConfig, client, logger: Optional[BackupLogger] = None):
        """Initialize backup scheduler.

        Args:
            config: Uploader configuration (paths, excludes, interval, mode)
            client: Object providing ``upload_or_update_file(path)``
            logger: Event sink; defaults to ``config.logger`` then stdout
        """
        self.config = config
        self.client = client
        self.logger: BackupLogger = logger or config.logger or ConsoleLogger()
        self.tracker = FileTracker()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return (self._thread is not None and self._thread.is_alive()
                and not self._stop_event.is_set())

    def start(self):
        """Start the periodic loop in the background and return immediately.

        Raises:
            SchedulerError: If this scheduler was already started
        """
        if self._thread is not None:
            raise SchedulerError("Backup scheduler has already been started")

        self._thread = threading.Thread(target=self._run_loop, name="onedrive-backup", daemon=True)
        self._thread.start()
        self.logger.info(f"✅ Scheduled backup started, interval: {self.config.backup_interval:g}s")

    def stop(self, wait: bool = False, timeout: Optional[float] = None):
        """Ask the loop to exit after the pass in progress, if any.

        Safe to call when never started or already stopped.

        Args:
            wait: Block until the background thread has exited
            timeout: Maximum seconds to wait when ``wait`` is set
        """
        if self._thread is None or self._stop_event.is_set():
            return

        self._stop_event.set()
        self.logger.info("✅ Scheduled backup stopped")

        if wait:
            self.join(timeout)

    def join(self, timeout: Optional[float] = None):
        """Block until the background thread has exited; no-op if never started."""
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run_loop(self):
        while not self._stop_event.is_set():
            try:
                self.run_pass()
            except Exception as e:
                # Keep the schedule alive; the next tick starts a fresh pass
                self.logger.error(f"❌ Backup pass aborted: {e}")

            if self._stop_event.wait(self.config.backup_interval):
                break

    def _report_inaccessible(self, path: str, error: OSError):
        self.logger.warning(f"⚠️  Cannot access path {path}: {error}")

    def run_pass(self) -> PassResult:
        """Scan, filter, detect changes and upload, one file at a time.

        Per-file failures are logged and counted, never raised.

        Returns:
            Counts for this pass
        """
        self.logger.info("🔄 Starting backup pass...")
        result = PassResult()

        files = FileHelper.discover_files(
            self.config.backup_paths,
            self.config.backup_excludes,
            on_error=self._report_inaccessible,
        )

        if not files:
            self.logger.info("ℹ️  No files to back up")
            return result

        for file_path in files:
            try:
                modified_time = FileHelper.get_modified_time(file_path)
            except OSError as e:
                self.logger.warning(f"⚠️  Cannot read file {file_path}: {e}")
                result.failed += 1
                continue

            if not self.tracker.needs_backup(file_path, modified_time, self.config.backup_full_mode):
                result.skipped += 1
                continue

            try:
                _, is_new = self.client.upload_or_update_file(file_path)
            except Exception as e:
                self.logger.error(f"❌ Backup failed {file_path}: {e}")
                result.failed += 1
                continue

            self.tracker.record_backup(file_path, modified_time)
            result.succeeded += 1

            if is_new:
                result.created.append(file_path)
                self.logger.info(f"✅ Created: {file_path}")
            else:
                result.updated.append(file_path)
                self.logger.info(f"✅ Updated: {file_path}")

        self.logger.info(f"📊 Backup finished - succeeded: {result.succeeded}, failed: {result.failed}")
        return result
