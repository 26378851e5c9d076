"""Microsoft Graph authentication handling."""

import logging
import threading
import time
import webbrowser
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msal
import requests
from rich.console import Console
from rich.panel import Panel

from ..config.settings import AppCredentials
from ..exceptions import (
    AuthenticationError,
    AuthorizationDeniedError,
    AuthorizationExpiredError,
    CredentialNotFoundError,
    DeviceFlowError,
    InvalidCredentialError,
    TokenRefreshError,
)
from .token_store import Credential, CredentialStore

logger = logging.getLogger(__name__)

APP_REGISTRATION_URL = "https://entra.microsoft.com/#view/Microsoft_AAD_RegisteredApps/ApplicationsListBlade"

# Refresh this long before the recorded expiry
EXPIRY_BUFFER = timedelta(minutes=5)

_DENIED_ERRORS = {"authorization_declined", "access_denied"}
_EXPIRED_ERRORS = {"expired_token", "code_expired", "authorization_pending", "slow_down"}


@dataclass
class DeviceCode:
    """What the operator needs to approve a device-flow request."""
    verification_uri: str
    user_code: str
    interval: int
    expires_at: float
    message: str = ""
    flow: Dict[str, Any] = field(default_factory=dict, repr=False)


def show_credentials_setup_guide(credentials_path: Union[str, Path],
                                 console: Optional[Console] = None,
                                 open_browser: bool = True) -> None:
    """Explain how to obtain the app credential descriptor."""
    console = console or Console()
    console.print(Panel(
        f"Expected path: [bold]{credentials_path}[/bold]\n\n"
        "1. Open the Microsoft Entra app registrations page\n"
        "2. Register an application (personal Microsoft accounts)\n"
        "3. Under Authentication, enable 'Allow public client flows'\n"
        "4. Save a JSON file with client_id (and optionally auth_uri, token_uri)\n"
        "   at the path above",
        title="⚠️  Credentials file missing or unreadable",
        border_style="yellow",
    ))

    if open_browser and webbrowser.open(APP_REGISTRATION_URL):
        console.print("  ✓ Opened the app registration page in your browser")
    else:
        console.print(f"  Visit: {APP_REGISTRATION_URL}")


def load_app_credentials(credentials_path: Union[str, Path],
                         console: Optional[Console] = None,
                         open_browser: bool = True) -> AppCredentials:
    """Read the descriptor, showing the setup guide when that fails.

    Raises:
        AuthenticationError: If the file is missing or malformed
    """
    try:
        return AppCredentials.from_file(credentials_path)
    except (OSError, ValueError) as e:
        show_credentials_setup_guide(credentials_path, console, open_browser)
        raise AuthenticationError(f"Cannot load credentials file {credentials_path}: {e}") from e


class DeviceFlowAuthorizer:
    """Run the OAuth2 device authorization grant through MSAL."""

    def __init__(self, app_credentials: AppCredentials, scopes: List[str],
                 timeout: float = 900.0, open_browser: bool = True,
                 console: Optional[Console] = None):
        """Initialize the authorizer.

        Args:
            app_credentials: Application registration
            scopes: Graph scopes to request
            timeout: Upper bound in seconds on waiting for the operator
            open_browser: Open the verification page automatically
            console: Console used for operator prompts
        """
        self.app_credentials = app_credentials
        self.scopes = scopes
        self.timeout = timeout
        self.open_browser = open_browser
        self.console = console or Console()
        self._app: Optional[msal.PublicClientApplication] = None

    def _get_msal_app(self) -> msal.PublicClientApplication:
        """Get MSAL application instance."""
        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=self.app_credentials.client_id,
                authority=self.app_credentials.authority,
            )
        return self._app

    def begin(self) -> DeviceCode:
        """Request a device code.

        Raises:
            DeviceFlowError: If the authorization server rejects the request
        """
        app = self._get_msal_app()
        try:
            flow = app.initiate_device_flow(scopes=self.scopes)
        except (requests.RequestException, ValueError) as e:
            raise DeviceFlowError(f"Could not request a device code: {e}") from e

        if "user_code" not in flow:
            error = flow.get("error_description", flow.get("error", "unknown error"))
            raise DeviceFlowError(f"Could not request a device code: {error}")

        # MSAL polls until expires_at; clamp it to our own timeout
        deadline = time.time() + self.timeout
        flow["expires_at"] = min(flow.get("expires_at", deadline), deadline)

        return DeviceCode(
            verification_uri=flow["verification_uri"],
            user_code=flow["user_code"],
            interval=int(flow.get("interval", 5)),
            expires_at=flow["expires_at"],
            message=flow.get("message", ""),
            flow=flow,
        )

    def poll(self, device_code: DeviceCode) -> Credential:
        """Block until the operator approves, declines, or the code expires.

        Raises:
            AuthorizationDeniedError: If the operator declined
            AuthorizationExpiredError: If the code expired or the timeout passed
            DeviceFlowError: For any other failure
        """
        app = self._get_msal_app()
        try:
            result = app.acquire_token_by_device_flow(device_code.flow)
        except requests.RequestException as e:
            raise DeviceFlowError(f"Polling for the device token failed: {e}") from e

        if "access_token" in result:
            return Credential.from_token_response(result)

        error = result.get("error", "")
        description = result.get("error_description", error or "unknown error")
        if error in _DENIED_ERRORS:
            raise AuthorizationDeniedError(f"Authorization was declined: {description}")
        if error in _EXPIRED_ERRORS:
            raise AuthorizationExpiredError(f"Authorization timed out: {description}")
        raise DeviceFlowError(f"Device authorization failed: {description}")

    def display(self, device_code: DeviceCode) -> None:
        """Show the verification URI and user code to the operator."""
        self.console.print(Panel(
            f"1. Open: [link={device_code.verification_uri}]{device_code.verification_uri}[/link]\n"
            f"2. Enter code: [bold cyan]{device_code.user_code}[/bold cyan]\n\n"
            "⏳ Waiting for authorization...",
            title="🔐 OneDrive device authorization",
            border_style="blue",
        ))

        if self.open_browser and not webbrowser.open(device_code.verification_uri):
            self.console.print("  ⚠️  Could not open a browser, visit the address above manually")

    def authorize(self) -> Credential:
        """Run the whole device flow and return the new credential."""
        device_code = self.begin()
        self.display(device_code)
        credential = self.poll(device_code)
        self.console.print("  ✅ Authorization succeeded", style="green")
        return credential


class MicrosoftGraphAuth:
    """Hand out valid access tokens, refreshing and re-authorizing as needed."""

    def __init__(self, app_credentials: AppCredentials, store: CredentialStore,
                 authorizer: Optional[DeviceFlowAuthorizer] = None,
                 scopes: Optional[List[str]] = None, request_timeout: float = 30.0):
        """Initialize Microsoft Graph authentication.

        Args:
            app_credentials: Application registration
            store: Where the access/refresh token is persisted
            authorizer: Device-flow runner used when no usable token is stored
            scopes: Graph scopes (defaults to the authorizer's)
            request_timeout: Timeout for token endpoint calls
        """
        self.app_credentials = app_credentials
        self.store = store
        self.authorizer = authorizer
        self.scopes = scopes or (authorizer.scopes if authorizer else [])
        self.request_timeout = request_timeout
        self._credential: Optional[Credential] = None
        # The scheduler thread and the caller may both ask for a token
        self._lock = threading.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def authenticate(self) -> Credential:
        """Load the stored credential or obtain a new one via the device flow.

        Raises:
            AuthenticationError: If no usable credential can be obtained
        """
        with self._lock:
            try:
                credential = self.store.load()
                logger.debug(f"Loaded stored token from {self.store.token_file}")
            except (CredentialNotFoundError, InvalidCredentialError) as e:
                logger.info(f"Stored token unusable ({e}), starting device authorization")
                if self.authorizer is None:
                    raise
                credential = self.authorizer.authorize()
                self._save(credential)

            self._credential = credential
            if self._needs_refresh():
                try:
                    self._refresh()
                except TokenRefreshError as e:
                    if self.authorizer is None:
                        raise
                    logger.warning(f"⚠️ {e}, starting device authorization")
                    self._credential = self.authorizer.authorize()
                    self._save(self._credential)
            return self._credential

    def _needs_refresh(self) -> bool:
        if self._credential is None:
            return True
        return self._credential.is_expired(datetime.now(timezone.utc) + EXPIRY_BUFFER)

    def _save(self, credential: Credential) -> None:
        try:
            self.store.save(credential)
        except OSError as e:
            raise AuthenticationError(f"Failed to save token: {e}") from e

    def _refresh(self) -> None:
        """Exchange the refresh token for a new access token."""
        current = self._credential
        if current is None or not current.can_refresh:
            raise TokenRefreshError("Token expired and no refresh token is available")

        data = {
            "grant_type": "refresh_token",
            "refresh_token": current.refresh_token,
            "client_id": self.app_credentials.client_id,
            "scope": " ".join(self.scopes),
        }
        if self.app_credentials.client_secret:
            data["client_secret"] = self.app_credentials.client_secret

        try:
            response = requests.post(self.app_credentials.token_uri, data=data,
                                     timeout=self.request_timeout)
        except requests.RequestException as e:
            raise TokenRefreshError(f"Token refresh request failed: {e}") from e

        if response.status_code != 200:
            try:
                error = response.json().get("error_description", response.text)
            except ValueError:
                error = response.text
            raise TokenRefreshError(f"Token refresh failed: HTTP {response.status_code}: {error}")

        self._credential = Credential.from_token_response(response.json(), previous=current)
        self._save(self._credential)
        logger.info("✅ Access token refreshed")

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Get current access token, refreshing it if it is about to expire."""
        with self._lock:
            if self._credential is None:
                raise AuthenticationError("Not authenticated; call authenticate() first")
            if force_refresh or self._needs_refresh():
                self._refresh()
            return self._credential.access_token

    def get_auth_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        token = self.get_access_token()
        token_type = self._credential.token_type if self._credential else "Bearer"
        return {"Authorization": f"{token_type} {token}"}

    def clear_cache(self):
        """Forget the stored token."""
        with self._lock:
            self.store.clear()
            self._credential = None
