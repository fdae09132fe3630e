"""Common test fixtures and utilities."""

import json
import re
import time
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from src.playlistdedup.auth import Credential, CredentialManager
from src.playlistdedup.client import PlaylistClient
from src.playlistdedup.executor import RequestExecutor
from src.playlistdedup.models import CollectionSnapshot, RemoteItem


def make_response(status: int, body=None, headers: Optional[Dict[str, str]] = None):
    """Build a real requests.Response."""
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def track(
    name: str, *artists: str, uri: Optional[str] = None, popularity: Optional[int] = None
) -> Dict:
    """Playlist entry as returned by the Web API."""
    entry = {
        "track": {
            "uri": uri or f"spotify:track:{name.replace(' ', '').lower()}",
            "name": name,
            "artists": [{"name": artist} for artist in artists],
        }
    }
    if popularity is not None:
        entry["track"]["popularity"] = popularity
    return entry


class FakeSpotify:
    """In-memory Spotify playlist service used as an HTTP session.

    Removal positions in one call refer to the playlist as it was before
    the call, like the real service.
    """

    def __init__(self, playlists: Optional[Dict[str, List[Dict]]] = None):
        self.playlists = {pid: list(entries) for pid, entries in (playlists or {}).items()}
        self.versions = {pid: 1 for pid in self.playlists}
        self.calls: List[tuple] = []
        self.queued: List = []

    def snapshot_id(self, playlist_id: str) -> str:
        return f"{playlist_id}-v{self.versions[playlist_id]}"

    def uris(self, playlist_id: str) -> List[Optional[str]]:
        return [
            entry["track"]["uri"] if entry.get("track") else None
            for entry in self.playlists[playlist_id]
        ]

    def external_edit(self, playlist_id: str, entry: Dict) -> None:
        """Change a playlist behind the client's back."""
        self.playlists[playlist_id].insert(0, entry)
        self.versions[playlist_id] += 1

    def queue(self, response) -> None:
        """Return this response for the next request instead of handling it."""
        self.queued.append(response)

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = re.sub(r"^https?://[^/]+/v1", "", url)
        self.calls.append((method, path, params, json))
        if self.queued:
            return self.queued.pop(0)

        match = re.match(r"^/playlists/([^/]+)(/tracks)?$", path)
        if not match or match.group(1) not in self.playlists:
            return make_response(404, {"error": {"status": 404, "message": "Not found"}})
        playlist_id, tracks = match.group(1), match.group(2)
        entries = self.playlists[playlist_id]

        if method == "GET" and not tracks:
            return make_response(200, {"name": playlist_id, "snapshot_id": self.snapshot_id(playlist_id)})
        if method == "GET":
            offset, limit = params["offset"], params["limit"]
            return make_response(200, {"items": entries[offset : offset + limit], "total": len(entries)})
        if method == "DELETE":
            return self._delete(playlist_id, json)
        if method in ("POST", "PUT"):
            if method == "PUT":
                if len(json["uris"]) > 100:
                    return make_response(400, {"error": {"status": 400, "message": "Too many"}})
                entries.clear()
            entries.extend({"track": {"uri": uri, "name": uri, "artists": []}} for uri in json["uris"])
            self.versions[playlist_id] += 1
            return make_response(201, {"snapshot_id": self.snapshot_id(playlist_id)})
        return make_response(405, {"error": {"status": 405}})

    def _delete(self, playlist_id: str, body: Dict):
        if body.get("snapshot_id") and body["snapshot_id"] != self.snapshot_id(playlist_id):
            return make_response(409, {"error": {"status": 409, "message": "Snapshot mismatch"}})
        uris = self.uris(playlist_id)
        doomed = set()
        for entry in body["tracks"]:
            for position in entry["positions"]:
                if position >= len(uris) or uris[position] != entry["uri"]:
                    return make_response(400, {"error": {"status": 400, "message": "Bad position"}})
                doomed.add(position)
        self.playlists[playlist_id] = [
            entry for index, entry in enumerate(self.playlists[playlist_id]) if index not in doomed
        ]
        self.versions[playlist_id] += 1
        return make_response(200, {"snapshot_id": self.snapshot_id(playlist_id)})


@pytest.fixture
def credential() -> Credential:
    """Credential valid for an hour."""
    return Credential("access-1", "refresh-1", int(time.time() * 1000) + 3600 * 1000)


@pytest.fixture
def credential_manager(credential) -> CredentialManager:
    """Credential manager that never needs to refresh."""
    return CredentialManager(credential, refresher=MagicMock(), margin_seconds=60)


@pytest.fixture
def sleep() -> MagicMock:
    """Stand-in for time.sleep."""
    return MagicMock()


@pytest.fixture
def executor(credential_manager, sleep) -> RequestExecutor:
    """Executor with a valid credential and no real waiting."""
    return RequestExecutor(credential_manager, sleep=sleep)


@pytest.fixture
def spotify() -> FakeSpotify:
    """Fake service with a playlist laid out as A, B, A, C, B."""
    return FakeSpotify(
        {
            "pl1": [
                track("Song A", "Artist 1", uri="spotify:track:a"),
                track("Song B", "Artist 2", "Artist 3", uri="spotify:track:b"),
                track("song a", "ARTIST 1", uri="spotify:track:a2"),
                track("Song C", "Artist 4", uri="spotify:track:c"),
                track("Song B", "Artist 3", "Artist 2", uri="spotify:track:b"),
            ]
        }
    )


@pytest.fixture
def client(executor, spotify) -> PlaylistClient:
    """Playlist client talking to the fake service."""
    return PlaylistClient(executor, session=spotify, base_url="https://api.spotify.com/v1")


def build_snapshot(names: List[str], token: Optional[str] = "snap-1", collection_id: str = "pl1"):
    """Snapshot where each name is also the item's uri suffix and artist."""
    items = tuple(
        RemoteItem(
            uri=f"spotify:track:{name.lower()}",
            display_name=name,
            secondary_attributes=(f"{name} Artist",),
            position=index,
        )
        for index, name in enumerate(names)
    )
    return CollectionSnapshot(collection_id, items, consistency_token=token)


@pytest.fixture
def snapshot_factory():
    """Factory for simple snapshots."""
    return build_snapshot


@pytest.fixture
def response_factory():
    """Factory for requests.Response objects."""
    return make_response


@pytest.fixture
def track_factory():
    """Factory for Web API playlist entries."""
    return track


@pytest.fixture
def fake_spotify_class():
    """The fake service class, for tests that build their own playlists."""
    return FakeSpotify
