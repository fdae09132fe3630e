"""Full playlist retrieval as a position-indexed snapshot."""

from typing import Any, Dict, List, Optional

from tqdm import tqdm

from . import config
from .client import PlaylistClient
from .errors import PartialFetchWarning, StaleSnapshotError
from .logging_config import get_logger
from .models import CollectionSnapshot, RemoteItem

logger = get_logger(__name__)


def parse_item(entry: Dict[str, Any], position: int) -> RemoteItem:
    """Convert a playlist entry to a RemoteItem.

    Entries whose track is gone still take up a position.
    """
    track = entry.get("track") if isinstance(entry, dict) else None
    if not track:
        return RemoteItem(uri=None, display_name="", secondary_attributes=(), position=position)
    artists = track.get("artists") or []
    return RemoteItem(
        uri=track.get("uri"),
        display_name=track.get("name") or "",
        secondary_attributes=tuple(a.get("name", "") for a in artists if a),
        position=position,
        popularity=track.get("popularity"),
    )


class CollectionFetcher:
    """Reads every entry of a playlist, page by page."""

    def __init__(
        self,
        client: PlaylistClient,
        page_size: Optional[int] = None,
        show_progress: bool = False,
    ):
        """Initialize fetcher.

        Args:
            client: Playlist API client
            page_size: Entries per page, capped at the service maximum
            show_progress: Whether to show a progress bar
        """
        self.client = client
        self.page_size = min(page_size or config.PAGE_SIZE, config.PAGE_SIZE)
        self.show_progress = show_progress

    def fetch_all(self, collection_id: str) -> CollectionSnapshot:
        """Fetch a fresh snapshot of a playlist.

        Args:
            collection_id: ID of playlist to fetch

        Returns:
            Snapshot of the playlist; flagged with a PartialFetchWarning if a
            page came back without an item list

        Raises:
            StaleSnapshotError: If the playlist changed while it was paged
            CollectionNotFoundError: If playlist is not found
            RemoteError: If API request fails
        """
        logger.info("Fetching items from playlist %s...", collection_id)
        token_before = self.client.get_snapshot_id(collection_id)

        items: List[RemoteItem] = []
        warning = None
        offset = 0
        progress = tqdm(desc="Fetching", unit="item", disable=not self.show_progress)
        try:
            while True:
                page = self.client.get_playlist_page(collection_id, offset, self.page_size)
                entries = page.get("items") if isinstance(page, dict) else None
                if not isinstance(entries, list):
                    warning = PartialFetchWarning(
                        collection_id, len(items), f"page at offset {offset} has no item list"
                    )
                    logger.warning(str(warning))
                    break

                for entry in entries:
                    items.append(parse_item(entry, len(items)))
                progress.update(len(entries))
                offset += len(entries)

                if len(entries) < self.page_size:
                    break
        finally:
            progress.close()

        token_after = self.client.get_snapshot_id(collection_id)
        if token_before != token_after:
            raise StaleSnapshotError(
                token_before,
                token_after,
                message=f"Playlist {collection_id} changed while it was being fetched",
            )

        logger.info("Fetched %d items from playlist %s", len(items), collection_id)
        return CollectionSnapshot(
            collection_id=collection_id,
            items=tuple(items),
            consistency_token=token_after,
            warning=warning,
        )
