"""Configuration settings and models for the uploader."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import ConfigurationError

# Graph requires upload session chunks to be multiples of 320 KiB
UPLOAD_CHUNK_UNIT = 320 * 1024

DEFAULT_SCOPES = ["Files.ReadWrite"]


class UploaderConfig(BaseModel):
    """Main configuration class.

    Field defaults allow a partially filled config to be built; the
    preconditions for a usable client are checked by
    :meth:`validate_settings`.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    enabled: bool = True
    folder_name: str = ""
    credentials_file: str = ""
    token_file: str = ""

    # Periodic backup
    backup_enabled: bool = False
    backup_interval: float = 3600.0  # seconds
    backup_paths: List[str] = Field(default_factory=list)
    backup_excludes: List[str] = Field(default_factory=list)
    backup_full_mode: bool = False

    # Optional BackupLogger override; None selects ConsoleLogger
    logger: Optional[Any] = Field(default=None, exclude=True)

    # Authorization and transport
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    device_flow_timeout: float = 900.0  # seconds
    open_browser: bool = True
    request_timeout: float = 60.0  # seconds
    upload_chunk_size: int = 10 * UPLOAD_CHUNK_UNIT

    def validate_settings(self) -> None:
        """Check that the configuration can back a client.

        Raises:
            ConfigurationError: If a required value is missing or out of range
        """
        if not self.enabled:
            raise ConfigurationError("OneDrive uploader is not enabled")
        if not self.credentials_file:
            raise ConfigurationError("credentials_file must not be empty")
        if not self.token_file:
            raise ConfigurationError("token_file must not be empty")
        if not self.folder_name:
            raise ConfigurationError("folder_name must not be empty")

        if self.backup_enabled:
            if self.backup_interval <= 0:
                raise ConfigurationError("backup_interval must be greater than zero")
            if not self.backup_paths:
                raise ConfigurationError("backup_paths must contain at least one path")

        if self.upload_chunk_size <= 0 or self.upload_chunk_size % UPLOAD_CHUNK_UNIT:
            raise ConfigurationError(
                f"upload_chunk_size must be a positive multiple of {UPLOAD_CHUNK_UNIT} bytes"
            )

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "UploaderConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.model_dump(exclude_none=True), f, default_flow_style=False, indent=2)

    @classmethod
    def from_env(cls) -> "UploaderConfig":
        """Load configuration from ONEDRIVE_* environment variables."""
        data: Dict[str, Any] = {
            'folder_name': os.getenv('ONEDRIVE_FOLDER_NAME', ''),
            'credentials_file': os.getenv('ONEDRIVE_CREDENTIALS_FILE', ''),
            'token_file': os.getenv('ONEDRIVE_TOKEN_FILE', ''),
            'backup_enabled': os.getenv('ONEDRIVE_BACKUP_ENABLED', '').lower() in ('1', 'true', 'yes'),
            'backup_full_mode': os.getenv('ONEDRIVE_BACKUP_FULL_MODE', '').lower() in ('1', 'true', 'yes'),
        }

        interval = os.getenv('ONEDRIVE_BACKUP_INTERVAL')
        if interval:
            data['backup_interval'] = float(interval)

        # Path lists use the platform separator, like PATH
        paths = os.getenv('ONEDRIVE_BACKUP_PATHS')
        if paths:
            data['backup_paths'] = [p for p in paths.split(os.pathsep) if p]

        excludes = os.getenv('ONEDRIVE_BACKUP_EXCLUDES')
        if excludes:
            data['backup_excludes'] = [p.strip() for p in excludes.split(',') if p.strip()]

        return cls(**data)


class AppCredentials(BaseModel):
    """Application registration used for the device flow (read-only)."""
    client_id: str
    client_secret: Optional[str] = None
    auth_uri: str = "https://login.microsoftonline.com/consumers"
    # Defaults to the token endpoint of the same authority as auth_uri
    token_uri: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def unwrap_installed(cls, data: Any) -> Any:
        # Console downloads nest the client under "installed"
        if isinstance(data, dict) and isinstance(data.get('installed'), dict):
            return data['installed']
        return data

    @model_validator(mode='after')
    def default_token_uri(self) -> "AppCredentials":
        if not self.token_uri:
            self.token_uri = f"{self.authority}/oauth2/v2.0/token"
        return self

    @property
    def authority(self) -> str:
        """MSAL authority derived from the authorization endpoint."""
        uri = self.auth_uri.rstrip('/')
        for suffix in ('/oauth2/v2.0/authorize', '/oauth2/authorize'):
            if uri.endswith(suffix):
                return uri[:-len(suffix)]
        return uri

    @classmethod
    def from_file(cls, credentials_path: Union[str, Path]) -> "AppCredentials":
        """Load the credential descriptor from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON or lacks a client id
        """
        credentials_path = Path(credentials_path)
        with open(credentials_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return cls.model_validate(data)
