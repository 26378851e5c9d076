"""Authentication: token persistence and device-flow authorization."""

from .microsoft_auth import DeviceCode, DeviceFlowAuthorizer, MicrosoftGraphAuth
from .token_store import Credential, CredentialStore

__all__ = ["Credential", "CredentialStore", "DeviceCode", "DeviceFlowAuthorizer", "MicrosoftGraphAuth"]
