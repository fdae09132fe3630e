"""Utility functions for playlist operations."""

import re

from .logging_config import get_logger

logger = get_logger(__name__)


def parse_playlist_id(playlist_str: str) -> str:
    """Extract a playlist ID from a Spotify URL or URI, or return the raw ID.

    Args:
        playlist_str: A playlist URL, spotify:playlist: URI or ID

    Returns:
        The playlist ID

    Raises:
        ValueError if the input is not a valid playlist URL, URI or ID
    """
    # Try to extract playlist ID from URL
    url_match = re.search(r"open\.spotify\.com/playlist/([A-Za-z0-9]+)", playlist_str)
    if url_match:
        return url_match.group(1)

    uri_match = re.match(r"^spotify:playlist:([A-Za-z0-9]+)$", playlist_str)
    if uri_match:
        return uri_match.group(1)

    # If not a URL, validate as a raw playlist ID
    if re.match(r"^[A-Za-z0-9]+$", playlist_str):
        return playlist_str

    raise ValueError(
        f"Invalid playlist format: {playlist_str}. " "Must be a Spotify playlist URL, URI or ID"
    )


def describe_item(item) -> str:
    """One-line description of a playlist item for display."""
    artists = ", ".join(item.secondary_attributes) or "Unknown"
    suffix = item.uri[-10:] if item.uri else "unavailable"
    return f'"{item.display_name}" - {artists} [pos:{item.position}, URI:{suffix}]'
