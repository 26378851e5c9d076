"""Persistent storage for OAuth access/refresh tokens."""

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import CredentialNotFoundError, InvalidCredentialError

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """Access token plus what is needed to renew it."""
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None  # UTC
    token_type: str = "Bearer"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once the expiry has passed. No expiry means never."""
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expiry <= now

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    @classmethod
    def from_token_response(cls, result: Dict[str, Any],
                            previous: Optional["Credential"] = None) -> "Credential":
        """Build a credential from an OAuth token endpoint response.

        Token endpoints may omit ``refresh_token`` on refresh; in that case
        the refresh token of ``previous`` is kept.
        """
        expiry = None
        expires_in = result.get("expires_in")
        if expires_in is not None:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))

        refresh_token = result.get("refresh_token")
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token

        return cls(
            access_token=result["access_token"],
            refresh_token=refresh_token,
            expiry=expiry,
            token_type=result.get("token_type", "Bearer"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["expiry"] = self.expiry.isoformat() if self.expiry else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        expiry = data.get("expiry")
        if expiry:
            expiry = datetime.fromisoformat(expiry)
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            expiry=expiry or None,
            token_type=data.get("token_type") or "Bearer",
        )


class CredentialStore:
    """Load and save a :class:`Credential` as a JSON file."""

    def __init__(self, token_file: Union[str, Path]):
        """Initialize credential store.

        Args:
            token_file: Path of the JSON token file
        """
        self.token_file = Path(token_file)

    def load(self) -> Credential:
        """Load the stored credential.

        Returns:
            The stored credential

        Raises:
            CredentialNotFoundError: If no token file exists
            InvalidCredentialError: If the file cannot be parsed, or the token
                is expired and has no refresh token
        """
        try:
            with open(self.token_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise CredentialNotFoundError(f"Token file not found: {self.token_file}")
        except (OSError, ValueError) as e:
            raise InvalidCredentialError(f"Could not read token file {self.token_file}: {e}") from e

        try:
            credential = Credential.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidCredentialError(f"Malformed token file {self.token_file}: {e}") from e

        if credential.is_expired() and not credential.can_refresh:
            raise InvalidCredentialError("Token has expired and cannot be refreshed")

        return credential

    def save(self, credential: Credential) -> None:
        """Persist a credential atomically.

        The JSON is written to a temporary file in the same directory and
        moved over the target only after the file was closed cleanly.

        Raises:
            OSError: If writing, closing or replacing the file fails
        """
        self.token_file.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.token_file.name}.", suffix=".tmp", dir=str(self.token_file.parent)
        )
        try:
            f = os.fdopen(fd, 'w', encoding='utf-8')
            try:
                json.dump(credential.to_dict(), f, indent=2)
            except BaseException:
                f.close()
                raise
            # close() flushes; a failure here means the file is truncated
            f.close()
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.token_file)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Token saved to {self.token_file}")

    def clear(self) -> None:
        """Remove the stored credential, forcing re-authorization."""
        self.token_file.unlink(missing_ok=True)
