"""Error handling utilities."""

import functools
import time
from typing import Any, Callable, Optional, TypeVar

from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_AFTER = 1.0


def log_error(error: Exception, context: Optional[str] = None) -> None:
    """Log an error with optional context.

    Args:
        error: The exception to log
        context: Optional context about where/why the error occurred
    """
    if context:
        logger.error(f"{context}: {str(error)}")
    else:
        logger.error(str(error))


class PlaylistDedupError(Exception):
    """Base class for playlist service errors."""

    pass


class AuthError(PlaylistDedupError):
    """Error raised when the credential cannot be loaded or refreshed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        """Initialize error.

        Args:
            message: Description of the failure
            status_code: HTTP status of the rejected refresh, if any
            body: Response body of the rejected refresh, if any
        """
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ThrottleSignal(PlaylistDedupError):
    """Raised when the service asks the caller to wait before retrying."""

    def __init__(self, retry_after: Optional[float] = None):
        """Initialize signal.

        Args:
            retry_after: Number of seconds to wait before retrying
        """
        self.retry_after = retry_after if retry_after is not None else DEFAULT_RETRY_AFTER
        super().__init__(f"Rate limit exceeded. Retry after {self.retry_after} seconds")


class RemoteError(PlaylistDedupError):
    """Error raised for a non-throttling failure of a remote call."""

    def __init__(self, status_code: Optional[int], body: Any = None):
        """Initialize error.

        Args:
            status_code: HTTP status code, None for transport failures
            body: Response body or transport error text
        """
        self.status_code = status_code
        self.body = body
        super().__init__(f"Remote call failed with status {status_code}: {body}")


class CollectionNotFoundError(RemoteError):
    """Error raised when a playlist is not found."""

    pass


class StaleSnapshotError(PlaylistDedupError):
    """Error raised when the remote playlist changed since it was fetched."""

    def __init__(
        self,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        message: Optional[str] = None,
    ):
        """Initialize error.

        Args:
            expected: Consistency token the plan was built against
            actual: Consistency token currently reported by the service
            message: Optional override for the error message
        """
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f"Playlist changed since snapshot (expected {expected}, found {actual})"
        )


class PartialFetchWarning(UserWarning):
    """Flags a snapshot that stopped short of the full playlist."""

    def __init__(self, collection_id: str, fetched: int, reason: str):
        """Initialize warning.

        Args:
            collection_id: Playlist that was being fetched
            fetched: Number of items fetched before stopping
            reason: Why the fetch stopped
        """
        self.collection_id = collection_id
        self.fetched = fetched
        self.reason = reason
        super().__init__(
            f"Fetch of {collection_id} stopped after {fetched} items: {reason}"
        )


def retry_on_throttle(
    sleep: Optional[Callable[[float], None]] = None,
    on_retry: Optional[Callable[[ThrottleSignal, int], None]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator to retry a function for as long as it is throttled.

    Only ThrottleSignal is retried, with no retry limit. Every other
    exception propagates on the first occurrence.

    Args:
        sleep: Function used to wait, defaults to time.sleep
        on_retry: Optional hook called with the signal and attempt number

    Returns:
        Decorated function
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except ThrottleSignal as signal:
                    attempt += 1
                    logger.warning(
                        "Throttled in %s. Retrying in %s seconds... (retry %d)",
                        func.__name__,
                        signal.retry_after,
                        attempt,
                    )
                    if on_retry is not None:
                        on_retry(signal, attempt)
                    (sleep or time.sleep)(signal.retry_after)

        return wrapper

    return decorator
