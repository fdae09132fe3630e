"""Duplicate detection over a playlist snapshot."""

from typing import Dict, List

from .models import CollectionSnapshot, DuplicateGroup, RemoteItem


def grouping_key(item: RemoteItem) -> str:
    """Key shared by occurrences of the same song.

    Name and artists, case-insensitive, artist order ignored.
    """
    artists = sorted(name.lower() for name in item.secondary_attributes)
    return item.display_name.lower() + "|" + ",".join(artists)


def detect_groups(snapshot: CollectionSnapshot) -> List[DuplicateGroup]:
    """Find groups of items that share a grouping key.

    Args:
        snapshot: Playlist snapshot

    Returns:
        Groups with at least two members, members ascending by position,
        groups ordered by the position of their first member
    """
    by_key: Dict[str, List[RemoteItem]] = {}
    for item in snapshot.items:
        if item.uri is None:
            continue
        by_key.setdefault(grouping_key(item), []).append(item)

    groups = [
        DuplicateGroup(key, tuple(sorted(members, key=lambda i: i.position)))
        for key, members in by_key.items()
        if len(members) > 1
    ]
    groups.sort(key=lambda group: group.keep.position)
    return groups
