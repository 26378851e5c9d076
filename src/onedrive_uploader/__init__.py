"""
OneDrive Uploader

Upload files into a OneDrive folder with device-flow sign-in, and back up
local paths to it on a schedule.
"""

__version__ = "1.0.0"
__author__ = "OneDrive Uploader"
__description__ = "Upload and periodically back up local files to OneDrive"

from .client import OneDriveClient
from .config.settings import AppCredentials, UploaderConfig
from .sync.backup_scheduler import BackupScheduler, PassResult
from .utils.logging import BackupLogger, ConsoleLogger, StandardLogger

__all__ = [
    "AppCredentials",
    "BackupLogger",
    "BackupScheduler",
    "ConsoleLogger",
    "OneDriveClient",
    "PassResult",
    "StandardLogger",
    "UploaderConfig",
]
