"""Single entry point for remote calls, with throttle handling."""

import time
from typing import Any, Callable, Dict, Optional

import requests

from .auth import CredentialManager
from .errors import (
    CollectionNotFoundError,
    RemoteError,
    StaleSnapshotError,
    ThrottleSignal,
    retry_on_throttle,
)
from .logging_config import get_logger

logger = get_logger(__name__)

THROTTLE_STATUS = 429
STALE_STATUSES = (409, 412)

RequestFn = Callable[[str], requests.Response]


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header value in seconds.

    Returns:
        Seconds to wait, or None if the header is absent or not a number
    """
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestExecutor:
    """Runs remote calls with a valid token, waiting out throttling.

    Throttled calls are retried forever after the wait the service asks
    for. Every other failure is raised to the caller on the first attempt.
    """

    def __init__(
        self,
        credentials: CredentialManager,
        sleep: Optional[Callable[[float], None]] = None,
        on_retry: Optional[Callable[[ThrottleSignal, int], None]] = None,
    ):
        """Initialize executor.

        Args:
            credentials: Manager providing a valid access token
            sleep: Function used to wait, defaults to time.sleep
            on_retry: Optional hook called for each throttled attempt
        """
        self.credentials = credentials
        self._sleep = sleep
        self._on_retry = on_retry
        self.retry_count = 0

    def execute(self, request_fn: RequestFn) -> Dict[str, Any]:
        """Run a remote call.

        Args:
            request_fn: Takes an access token and performs one HTTP request

        Returns:
            Decoded JSON body, or an empty dict for an empty body

        Raises:
            AuthError: If the token cannot be refreshed
            CollectionNotFoundError: If the playlist does not exist
            StaleSnapshotError: If the service rejects a stale snapshot token
            RemoteError: For any other non-throttling failure
        """

        @retry_on_throttle(sleep=self._wait, on_retry=self._record_retry)
        def attempt() -> Dict[str, Any]:
            token = self.credentials.ensure_valid().access_token
            try:
                response = request_fn(token)
            except requests.RequestException as e:
                raise RemoteError(None, str(e)) from e
            return self._handle(response)

        return attempt()

    def _handle(self, response: requests.Response) -> Dict[str, Any]:
        status = response.status_code
        if status == THROTTLE_STATUS:
            raise ThrottleSignal(parse_retry_after(response.headers.get("Retry-After")))
        if status in STALE_STATUSES:
            raise StaleSnapshotError(message=f"Service rejected snapshot: {_response_body(response)}")
        if status == 404:
            raise CollectionNotFoundError(status, _response_body(response))
        if not response.ok:
            raise RemoteError(status, _response_body(response))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(status, response.text) from e

    def _wait(self, seconds: float) -> None:
        (self._sleep or time.sleep)(seconds)

    def _record_retry(self, signal: ThrottleSignal, attempt: int) -> None:
        self.retry_count += 1
        if self._on_retry is not None:
            self._on_retry(signal, attempt)
