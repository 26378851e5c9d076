"""OneDrive client: folder resolution, uploads and scheduled backup."""

import logging
import os
from typing import Optional, Tuple

from rich.console import Console

from .auth.microsoft_auth import DeviceFlowAuthorizer, MicrosoftGraphAuth, load_app_credentials
from .auth.token_store import CredentialStore
from .config.settings import UploaderConfig
from .destinations.onedrive import OneDriveGateway
from .exceptions import ConfigurationError, RemoteStorageError, SchedulerError
from .sync.backup_scheduler import BackupScheduler
from .utils.file_utils import FileHelper
from .utils.logging import BackupLogger, ConsoleLogger

logger = logging.getLogger(__name__)


class OneDriveClient:
    """Upload files into one OneDrive folder and optionally back up paths on a timer.

    Construction validates the configuration, authenticates (running the
    device flow when no usable token is stored) and resolves the target
    folder, creating it in the drive root if needed. Any failure raises;
    no partially initialized client is returned.

    The folder id is resolved once and cached. If the folder is deleted
    remotely, uploads fail until a new client is built.
    """

    def __init__(self, config: UploaderConfig, gateway: Optional[OneDriveGateway] = None,
                 console: Optional[Console] = None):
        """Initialize the client.

        Args:
            config: Uploader configuration
            gateway: Pre-built gateway; skips authentication when given
            console: Console for operator prompts during authorization

        Raises:
            ConfigurationError: If the configuration is invalid
            AuthenticationError: If no access token can be obtained
            RemoteStorageError: If the target folder cannot be resolved
        """
        config.validate_settings()

        self.config = config
        self.logger: BackupLogger = config.logger or ConsoleLogger()
        self.auth: Optional[MicrosoftGraphAuth] = None

        if gateway is None:
            self.auth = self._authenticate(config, console)
            gateway = OneDriveGateway(
                self.auth,
                timeout=config.request_timeout,
                chunk_size=config.upload_chunk_size,
            )
        self.gateway = gateway
        self._scheduler: Optional[BackupScheduler] = None
        self._stopping: Optional[BackupScheduler] = None

        try:
            self._folder_id = self.get_or_create_folder()
        except RemoteStorageError as e:
            raise RemoteStorageError(f"Failed to initialize folder: {e}", e.status_code) from e

        logger.info(f"Using OneDrive folder '{config.folder_name}' ({self._folder_id})")

    @staticmethod
    def _authenticate(config: UploaderConfig, console: Optional[Console]) -> MicrosoftGraphAuth:
        app_credentials = load_app_credentials(config.credentials_file, console, config.open_browser)
        authorizer = DeviceFlowAuthorizer(
            app_credentials,
            scopes=config.scopes,
            timeout=config.device_flow_timeout,
            open_browser=config.open_browser,
            console=console,
        )
        auth = MicrosoftGraphAuth(
            app_credentials,
            CredentialStore(config.token_file),
            authorizer=authorizer,
            scopes=config.scopes,
            request_timeout=config.request_timeout,
        )
        auth.authenticate()
        return auth

    @property
    def folder_id(self) -> str:
        """Id of the target folder, resolved at construction."""
        return self._folder_id

    def get_or_create_folder(self) -> str:
        """Find the configured folder in the drive root, creating it if absent."""
        folder_name = self.config.folder_name

        folder_id = self.gateway.find_folder_by_name(folder_name)
        if folder_id is not None:
            return folder_id

        logger.info(f"Folder '{folder_name}' not found, creating it")
        return self.gateway.create_folder(folder_name)

    def create_folder(self, folder_name: str, parent_id: Optional[str] = None) -> str:
        """Create a folder (in the drive root when no parent is given)."""
        return self.gateway.create_folder(folder_name, parent_id)

    def upload_file(self, local_path: str) -> str:
        """Upload a local file into the target folder as a new file.

        Returns:
            Remote file id
        """
        file_name = os.path.basename(local_path)
        logger.debug(f"Uploading {local_path} ({FileHelper.format_file_size(os.path.getsize(local_path))})")
        return self.gateway.create_file(file_name, self._folder_id, local_path)

    def update_file(self, local_path: str) -> str:
        """Overwrite the remote file with the same base name.

        Returns:
            Remote file id

        Raises:
            RemoteStorageError: If no such file exists in the folder
        """
        file_name = os.path.basename(local_path)

        file_id = self.gateway.find_file_by_name(file_name, self._folder_id)
        if file_id is None:
            raise RemoteStorageError(f"File not found: {file_name}", status_code=404)

        logger.debug(f"Updating {local_path} ({FileHelper.format_file_size(os.path.getsize(local_path))})")
        return self.gateway.update_file(file_id, local_path)

    def upload_or_update_file(self, local_path: str) -> Tuple[str, bool]:
        """Create the remote file, or overwrite it if one with the same name exists.

        Returns:
            Tuple of (remote file id, True if newly created)
        """
        file_name = os.path.basename(local_path)

        file_id = self.gateway.find_file_by_name(file_name, self._folder_id)
        if file_id is None:
            return self.gateway.create_file(file_name, self._folder_id, local_path), True

        return self.gateway.update_file(file_id, local_path), False

    def test_connection(self) -> bool:
        """Check that the drive is reachable with the current token."""
        try:
            self.gateway.get_drive_info()
            return True
        except RemoteStorageError as e:
            logger.error(f"OneDrive connection test failed: {e}")
            return False

    @property
    def scheduler(self) -> Optional[BackupScheduler]:
        return self._scheduler

    def start_backup(self) -> BackupScheduler:
        """Start periodic backup in the background (non-blocking).

        Raises:
            ConfigurationError: If backup is not enabled in the configuration
            SchedulerError: If a backup is already running
        """
        if not self.config.backup_enabled:
            raise ConfigurationError("Backup is not enabled; set backup_enabled = True")

        if self._scheduler is not None:
            raise SchedulerError("Backup is already running")

        # Let a pass left running by stop_backup(wait=False) finish first
        if self._stopping is not None:
            self._stopping.join()
            self._stopping = None

        scheduler = BackupScheduler(self.config, self, self.logger)
        self._scheduler = scheduler
        scheduler.start()
        return scheduler

    def stop_backup(self, wait: bool = False):
        """Stop periodic backup; does nothing if none is running.

        With ``wait=False`` the pass in progress keeps running in the
        background; a later :meth:`start_backup` waits for it to finish.
        """
        if self._scheduler is not None:
            self._scheduler.stop(wait=wait)
            if not wait:
                self._stopping = self._scheduler
            self._scheduler = None
