"""Exceptions raised by the OneDrive uploader."""

from typing import Optional


class UploaderError(Exception):
    """Base exception for uploader operations."""

    pass


class ConfigurationError(UploaderError):
    """Configuration is missing a required value or is inconsistent."""

    pass


class AuthenticationError(UploaderError):
    """Could not obtain a usable access token."""

    pass


class CredentialNotFoundError(AuthenticationError):
    """No stored credential exists at the configured path."""

    pass


class InvalidCredentialError(AuthenticationError):
    """Stored credential is unreadable, or expired without a refresh token."""

    pass


class DeviceFlowError(AuthenticationError):
    """Device-flow authorization could not be completed."""

    pass


class AuthorizationDeniedError(DeviceFlowError):
    """The operator declined the authorization request."""

    pass


class AuthorizationExpiredError(DeviceFlowError):
    """The device code expired before the operator approved it."""

    pass


class TokenRefreshError(AuthenticationError):
    """Refreshing an expired access token failed."""

    pass


class RemoteStorageError(UploaderError):
    """A OneDrive request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchedulerError(UploaderError):
    """Backup scheduler was used incorrectly (e.g. started twice)."""

    pass
