"""Spotify credential handling."""

import json
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import requests

from . import config
from .errors import AuthError
from .logging_config import get_logger

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Credential:
    """Access credential with its expiry in epoch milliseconds."""

    access_token: str
    refresh_token: str
    expires_at_ms: int

    def valid_for(self, margin_seconds: float, now_ms: int) -> bool:
        """Whether the credential stays valid for at least margin_seconds."""
        return now_ms + margin_seconds * 1000 < self.expires_at_ms

    def to_json(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at_ms,
        }

    @staticmethod
    def from_json(data: dict) -> "Credential":
        try:
            return Credential(
                access_token=str(data.get("access_token") or ""),
                refresh_token=str(data["refresh_token"]),
                expires_at_ms=int(data.get("expires_at") or 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed credential data: {str(e)}") from e


class CredentialStore:
    """JSON file holding the credential between runs."""

    def __init__(self, path: Optional[str] = None):
        """Initialize store.

        Args:
            path: Token file path, defaults to config.TOKEN_FILE
        """
        self.path = path or config.TOKEN_FILE

    def load(self) -> Credential:
        """Read the credential.

        Raises:
            AuthError: If the file is missing or malformed
        """
        if not os.path.exists(self.path):
            raise AuthError(f"Token file not found: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise AuthError(f"Failed to read token file {self.path}: {str(e)}") from e
        return Credential.from_json(data)

    def save(self, credential: Credential) -> None:
        """Write the credential, replacing the previous file in one step."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(credential.to_json(), f, indent=2)
        os.replace(tmp_path, self.path)


class TokenRefresher:
    """Exchanges a refresh token for a new access token."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id or config.SPOTIFY_CLIENT_ID
        self.client_secret = client_secret or config.SPOTIFY_CLIENT_SECRET
        self.token_url = token_url or config.SPOTIFY_TOKEN_URL
        self.session = session or requests.Session()
        self.timeout = timeout or config.REQUEST_TIMEOUT

    def refresh(self, refresh_token: str) -> Tuple[str, float, Optional[str]]:
        """Run the refresh exchange.

        Args:
            refresh_token: Long-lived refresh token

        Returns:
            Tuple of (access token, lifetime in seconds, rotated refresh token or None)

        Raises:
            AuthError: If the exchange is rejected or cannot be made
        """
        try:
            response = self.session.post(
                self.token_url,
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Token refresh failed: {str(e)}") from e

        if not response.ok:
            raise AuthError(
                f"Token refresh rejected with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        data = response.json()
        access_token = data.get("access_token")
        if not access_token:
            raise AuthError("Token refresh response has no access token", body=data)
        return access_token, float(data.get("expires_in", 3600)), data.get("refresh_token")


class CredentialManager:
    """Owns the credential and keeps it valid.

    Refresh is single-flight: callers that arrive while a refresh is running
    wait for it and use its result instead of starting their own. A rejected
    refresh is shared the same way: every caller holding the same credential
    gets the original AuthError without another exchange.
    """

    def __init__(
        self,
        credential: Credential,
        refresher: TokenRefresher,
        store: Optional[CredentialStore] = None,
        margin_seconds: Optional[float] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        """Initialize manager.

        Args:
            credential: Credential loaded at startup
            refresher: Performs the refresh exchange
            store: Where to persist refreshed credentials
            margin_seconds: Minimum remaining validity, defaults to config
            clock: Returns the current time in epoch milliseconds
        """
        self._credential = credential
        self._refresher = refresher
        self._store = store
        self._margin = config.REFRESH_MARGIN_SECONDS if margin_seconds is None else margin_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._failure: Optional[Tuple[Credential, AuthError]] = None
        self.refresh_count = 0

    @classmethod
    def from_store(
        cls,
        store: CredentialStore,
        refresher: TokenRefresher,
        margin_seconds: Optional[float] = None,
    ) -> "CredentialManager":
        """Create a manager from the persisted credential."""
        return cls(store.load(), refresher, store, margin_seconds)

    @property
    def credential(self) -> Credential:
        """Current credential, possibly close to expiry."""
        return self._credential

    def ensure_valid(self) -> Credential:
        """Return a credential valid for at least the safety margin.

        Raises:
            AuthError: If the refresh exchange is rejected
        """
        credential = self._credential
        if credential.valid_for(self._margin, self._clock()):
            return credential

        with self._lock:
            # Another caller may have refreshed while we waited
            credential = self._credential
            if credential.valid_for(self._margin, self._clock()):
                return credential
            if self._failure is not None and self._failure[0] is credential:
                raise self._failure[1]
            try:
                return self._refresh()
            except AuthError as e:
                self._failure = (credential, e)
                raise

    def access_token(self) -> str:
        """Access token valid for at least the safety margin."""
        return self.ensure_valid().access_token

    def _refresh(self) -> Credential:
        logger.info("Refreshing access token...")
        access_token, expires_in, rotated = self._refresher.refresh(self._credential.refresh_token)
        credential = Credential(
            access_token=access_token,
            refresh_token=rotated or self._credential.refresh_token,
            expires_at_ms=self._clock() + int(expires_in * 1000),
        )
        if self._store is not None:
            self._store.save(credential)
        self._credential = credential
        self.refresh_count += 1
        logger.info(
            "Token valid until %s",
            time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(credential.expires_at_ms / 1000)),
        )
        return credential
