"""Spotify playlist API wrapper."""

import threading
from typing import Any, Dict, List, Optional

import requests

from . import config
from .executor import RequestExecutor
from .logging_config import get_logger

logger = get_logger(__name__)


class PlaylistClient:
    """Wire-level playlist operations.

    Every call goes through the request executor, so callers never deal
    with tokens or throttling themselves. Without an injected session each
    thread gets its own requests.Session, so one client can serve several
    playlists in parallel.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize API wrapper.

        Args:
            executor: Executor every request is sent through
            session: HTTP session shared by every thread, one per thread by default
            base_url: Web API root, defaults to config.SPOTIFY_API_URL
            timeout: Per-request timeout in seconds
        """
        self.executor = executor
        self._session = session
        self._local = threading.local()
        self.base_url = (base_url or config.SPOTIFY_API_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT

    @property
    def session(self) -> requests.Session:
        """HTTP session for the calling thread."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def _call(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"

        def send(token: str) -> requests.Response:
            logger.debug("%s %s params=%s", method, path, params)
            return self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )

        return self.executor.execute(send)

    def get_playlist_info(self, playlist_id: str) -> Dict[str, Any]:
        """Get playlist name and current snapshot id.

        Args:
            playlist_id: ID of playlist

        Returns:
            Dictionary with id, name and snapshot_id

        Raises:
            CollectionNotFoundError: If playlist is not found
            RemoteError: If API request fails
        """
        data = self._call("GET", f"/playlists/{playlist_id}", params={"fields": "snapshot_id,name"})
        return {
            "id": playlist_id,
            "name": data.get("name", ""),
            "snapshot_id": data.get("snapshot_id"),
        }

    def get_snapshot_id(self, playlist_id: str) -> Optional[str]:
        """Get the playlist's current snapshot id."""
        return self.get_playlist_info(playlist_id)["snapshot_id"]

    def get_playlist_page(self, playlist_id: str, offset: int, limit: int) -> Dict[str, Any]:
        """Get one page of playlist entries.

        Args:
            playlist_id: ID of playlist
            offset: Index of the first entry
            limit: Maximum number of entries

        Returns:
            Raw page response; entries are under "items"
        """
        return self._call(
            "GET",
            f"/playlists/{playlist_id}/tracks",
            params={
                "offset": offset,
                "limit": limit,
                "fields": "items(track(uri,name,popularity,artists(name))),total",
            },
        )

    def remove_occurrences(
        self,
        playlist_id: str,
        entries: List[Dict[str, Any]],
        snapshot_id: Optional[str] = None,
    ) -> Optional[str]:
        """Remove items at specific positions.

        Args:
            playlist_id: ID of playlist
            entries: [{"uri": ..., "positions": [...]}, ...]
            snapshot_id: Snapshot the positions refer to

        Returns:
            New snapshot id
        """
        body: Dict[str, Any] = {"tracks": entries}
        if snapshot_id:
            body["snapshot_id"] = snapshot_id
        return self._call("DELETE", f"/playlists/{playlist_id}/tracks", body=body).get(
            "snapshot_id"
        )

    def add_items(self, playlist_id: str, uris: List[str]) -> Optional[str]:
        """Append items to the end of a playlist.

        Args:
            playlist_id: ID of playlist
            uris: Item uris to append

        Returns:
            New snapshot id
        """
        return self._call("POST", f"/playlists/{playlist_id}/tracks", body={"uris": uris}).get(
            "snapshot_id"
        )

    def replace_items(self, playlist_id: str, uris: List[str]) -> Optional[str]:
        """Replace every item of a playlist.

        Args:
            playlist_id: ID of playlist
            uris: New contents, at most one batch

        Returns:
            New snapshot id
        """
        return self._call("PUT", f"/playlists/{playlist_id}/tracks", body={"uris": uris}).get(
            "snapshot_id"
        )
