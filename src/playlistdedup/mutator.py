"""Position-stable batched removal and insertion."""

from typing import Iterable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from . import config
from .client import PlaylistClient
from .errors import PlaylistDedupError, StaleSnapshotError, log_error
from .logging_config import get_logger
from .models import (
    ADD,
    REPLACE,
    CollectionSnapshot,
    DuplicateGroup,
    MutationPlan,
    MutationResult,
    PartialMutationResult,
)

logger = get_logger(__name__)

# Keep the first occurrence of each group where it is
KEEP_FIRST = "keep-first"
# Remove every occurrence, then append one copy per group
RESTORE_CANONICAL = "restore"
POLICIES = (KEEP_FIRST, RESTORE_CANONICAL)

SORT_KEYS = {
    "name": lambda item: item.display_name.casefold(),
    "popularity": lambda item: -(item.popularity or 0),
}


def _batch_size(batch_size: Optional[int]) -> int:
    return min(batch_size or config.MAX_BATCH_SIZE, config.MAX_BATCH_SIZE)


def plan_removals(
    snapshot: CollectionSnapshot,
    groups: Sequence[DuplicateGroup],
    policy: str = KEEP_FIRST,
    batch_size: Optional[int] = None,
    multi_position: bool = False,
    pending_restores: Sequence[str] = (),
) -> MutationPlan:
    """Build the plan that removes duplicate occurrences.

    Under RESTORE_CANONICAL each group's copy is appended right after the
    batch that removes its last occurrence, so a plan cut short by a stale
    snapshot never leaves a group without its copy.

    Args:
        snapshot: Snapshot the groups were detected in
        groups: Duplicate groups to resolve
        policy: KEEP_FIRST or RESTORE_CANONICAL
        batch_size: Max items per remote call
        multi_position: Merge same-uri removals within a batch
        pending_restores: Uris left unappended by an earlier plan, appended first

    Returns:
        Plan with removals in descending position order

    Raises:
        ValueError: If the policy is unknown
    """
    if policy not in POLICIES:
        raise ValueError(f"Unknown policy: {policy}")

    removals: List[Tuple[str, int]] = []
    restores: List[Tuple[str, Tuple[int, ...]]] = [(uri, ()) for uri in pending_restores]
    for group in groups:
        if policy == KEEP_FIRST:
            targets = group.duplicates
        else:
            targets = group.items
            restores.append((group.keep.uri, tuple(item.position for item in targets)))
        removals.extend((item.uri, item.position) for item in targets)

    plan = MutationPlan.build(
        snapshot.collection_id,
        removals=removals,
        restores=restores,
        consistency_token=snapshot.consistency_token,
        batch_size=_batch_size(batch_size),
        multi_position=multi_position,
    )
    logger.debug("Removal order: %s", plan.removal_positions())
    return plan


def plan_position_removals(
    snapshot: CollectionSnapshot,
    positions: Iterable[int],
    batch_size: Optional[int] = None,
    multi_position: bool = False,
) -> MutationPlan:
    """Build a plan that removes the occurrences at the given positions.

    Raises:
        ValueError: If a position is outside the snapshot or has no uri
    """
    removals = []
    for position in sorted(set(positions)):
        item = snapshot.item_at(position)
        if item.uri is None:
            raise ValueError(f"Item at position {position} has no uri and cannot be removed")
        removals.append((item.uri, position))

    return MutationPlan.build(
        snapshot.collection_id,
        removals=removals,
        consistency_token=snapshot.consistency_token,
        batch_size=_batch_size(batch_size),
        multi_position=multi_position,
    )


def plan_additions(
    collection_id: str,
    uris: Iterable[str],
    batch_size: Optional[int] = None,
) -> MutationPlan:
    """Build a plan that appends uris in batches."""
    return MutationPlan.build(
        collection_id, additions=list(uris), batch_size=_batch_size(batch_size)
    )


def plan_sort(
    snapshot: CollectionSnapshot,
    criterion: str = "name",
    batch_size: Optional[int] = None,
) -> MutationPlan:
    """Build the plan that rewrites a playlist in sorted order.

    Names sort ascending ignoring case, popularity sorts most popular
    first. Ties keep their current order. Unavailable items have no uri
    to write back and are dropped.

    Raises:
        ValueError: If the criterion is unknown
    """
    if criterion not in SORT_KEYS:
        raise ValueError(f"Unknown sort criterion: {criterion}")

    items = [item for item in snapshot.items if item.uri is not None]
    dropped = len(snapshot.items) - len(items)
    if dropped:
        logger.warning(
            "Dropping %d unavailable items from playlist %s", dropped, snapshot.collection_id
        )
    items.sort(key=SORT_KEYS[criterion])

    return MutationPlan.replacement(
        snapshot.collection_id,
        [item.uri for item in items],
        consistency_token=snapshot.consistency_token,
        batch_size=_batch_size(batch_size),
    )


class BatchMutator:
    """Executes mutation plans one batch at a time, in plan order."""

    def __init__(self, client: PlaylistClient, guard: bool = True, show_progress: bool = False):
        """Initialize mutator.

        Args:
            client: Playlist API client
            guard: Check the playlist's snapshot id before each removal or
                replace batch
            show_progress: Whether to show a progress bar
        """
        self.client = client
        self.guard = guard
        self.show_progress = show_progress

    def execute(self, plan: MutationPlan) -> MutationResult:
        """Apply a plan to its playlist.

        Stops at the first failing batch. Batches already applied stay
        applied. An add batch still runs when the playlist has drifted, but
        its snapshot id is not trusted, so the next guarded batch stops as
        stale.

        Args:
            plan: Plan to apply

        Returns:
            MutationResult, or PartialMutationResult if a batch failed
        """
        collection_id = plan.collection_id
        expected = plan.consistency_token
        if self.guard and not expected:
            logger.debug("No snapshot id for %s, removing without staleness check", collection_id)

        guarded = [index for index, batch in enumerate(plan.batches) if batch.kind != ADD]
        last_guarded = guarded[-1] if guarded else -1
        applied = []
        removed = added = 0
        batches = tqdm(
            plan.batches, desc="Applying", unit="batch", disable=not self.show_progress
        )
        for index, batch in enumerate(batches):
            try:
                if batch.kind == ADD:
                    drifted = False
                    if self.guard and expected and index < last_guarded:
                        drifted = self.client.get_snapshot_id(collection_id) != expected
                    token = self.client.add_items(collection_id, batch.to_payload())
                    added += batch.size
                    logger.info("Added %d items (batch %d/%d)", batch.size, index + 1, len(plan))
                    if drifted:
                        logger.warning("Playlist %s changed before batch %d", collection_id, index + 1)
                        token = None
                else:
                    if self.guard and expected:
                        current = self.client.get_snapshot_id(collection_id)
                        if current != expected:
                            raise StaleSnapshotError(expected, current)
                    if batch.kind == REPLACE:
                        token = self.client.replace_items(collection_id, batch.to_payload())
                        added += batch.size
                        logger.info("Replaced playlist with %d items", batch.size)
                    else:
                        token = self.client.remove_occurrences(
                            collection_id, batch.to_payload(), snapshot_id=expected
                        )
                        removed += batch.size
                        logger.info(
                            "Removed %d items (batch %d/%d)", batch.size, index + 1, len(plan)
                        )
            except PlaylistDedupError as e:
                batches.close()
                log_error(e, f"Batch {index + 1}/{len(plan)} failed for playlist {collection_id}")
                return PartialMutationResult(
                    plan=plan,
                    applied=applied,
                    removed_count=removed,
                    added_count=added,
                    consistency_token=expected,
                    failed_at=batch,
                    remaining_plan=plan.remainder(index),
                    error=e,
                )

            applied.append(batch)
            if token:
                expected = token

        return MutationResult(
            plan=plan,
            applied=applied,
            removed_count=removed,
            added_count=added,
            consistency_token=expected,
        )
