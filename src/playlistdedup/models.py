"""Data model for playlist snapshots and mutation plans."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import PartialFetchWarning, PlaylistDedupError

REMOVE = "remove"
ADD = "add"
REPLACE = "replace"


@dataclass(frozen=True)
class RemoteItem:
    """One occurrence of an item in a playlist."""

    uri: Optional[str]
    display_name: str
    secondary_attributes: Tuple[str, ...]
    position: int
    popularity: Optional[int] = None


@dataclass(frozen=True)
class CollectionSnapshot:
    """Point-in-time view of a playlist in server order.

    Positions are 0..N-1 with no gaps. The snapshot is stale as soon as
    anyone else changes the playlist.
    """

    collection_id: str
    items: Tuple[RemoteItem, ...]
    consistency_token: Optional[str] = None
    warning: Optional[PartialFetchWarning] = None

    def __post_init__(self):
        for index, item in enumerate(self.items):
            if item.position != index:
                raise ValueError(
                    f"Snapshot positions must be contiguous: item {index} has position {item.position}"
                )

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_partial(self) -> bool:
        """Whether the fetch stopped before reaching the end of the playlist."""
        return self.warning is not None

    def item_at(self, position: int) -> RemoteItem:
        """Get the item at a position.

        Raises:
            ValueError: If the position is outside the snapshot
        """
        if position < 0 or position >= len(self.items):
            raise ValueError(f"Position {position} outside snapshot of {len(self.items)} items")
        return self.items[position]


@dataclass(frozen=True)
class DuplicateGroup:
    """Occurrences sharing one grouping key, ascending by position."""

    key: str
    items: Tuple[RemoteItem, ...]

    @property
    def keep(self) -> RemoteItem:
        """Canonical occurrence, the first one in the playlist."""
        return self.items[0]

    @property
    def duplicates(self) -> Tuple[RemoteItem, ...]:
        """Occurrences after the canonical one."""
        return self.items[1:]


@dataclass(frozen=True)
class RemoveOp:
    """Remove specific occurrences of a uri by position."""

    uri: str
    positions: Tuple[int, ...]


@dataclass(frozen=True)
class AddOp:
    """Append a uri to the end of the playlist, or write it in a replacement."""

    uri: str


@dataclass(frozen=True)
class MutationBatch:
    """Operations sent in a single remote call."""

    kind: str
    ops: Tuple[object, ...]

    @property
    def size(self) -> int:
        """Number of playlist items this batch touches."""
        if self.kind == REMOVE:
            return sum(len(op.positions) for op in self.ops)
        return len(self.ops)

    def to_payload(self) -> List[Dict]:
        """Wire representation of the batch's operations."""
        if self.kind == REMOVE:
            return [{"uri": op.uri, "positions": list(op.positions)} for op in self.ops]
        return [op.uri for op in self.ops]


def _add_batches(uris: Sequence[str], batch_size: int) -> List[MutationBatch]:
    return [
        MutationBatch(ADD, tuple(AddOp(uri) for uri in uris[start : start + batch_size]))
        for start in range(0, len(uris), batch_size)
    ]


class MutationPlan:
    """Ordered batches of remove, add and replace operations for one playlist.

    Build plans with MutationPlan.build or MutationPlan.replacement. Removal
    pairs are sorted by descending position across the whole plan before
    they are split into batches, so no removal shifts a position that is
    still pending. Appends never shift a lower position, so add batches may
    sit between removal batches.
    """

    def __init__(
        self,
        collection_id: str,
        batches: Sequence[MutationBatch],
        consistency_token: Optional[str] = None,
        batch_size: int = 100,
        _sorted: bool = False,
    ):
        if not _sorted:
            raise TypeError("Use MutationPlan.build to create a plan")
        self.collection_id = collection_id
        self.batches: Tuple[MutationBatch, ...] = tuple(batches)
        self.consistency_token = consistency_token
        self.batch_size = batch_size

    @classmethod
    def build(
        cls,
        collection_id: str,
        removals: Iterable[Tuple[str, int]] = (),
        additions: Iterable[str] = (),
        consistency_token: Optional[str] = None,
        batch_size: int = 100,
        multi_position: bool = False,
        restores: Iterable[Tuple[str, Iterable[int]]] = (),
    ) -> "MutationPlan":
        """Create a plan from (uri, position) removal pairs and uris to append.

        Args:
            collection_id: Playlist the plan applies to
            removals: (uri, position) pairs, one per occurrence to delete
            additions: Uris to append after all removals
            restores: (uri, positions) pairs; the uri is appended right after
                the batch that removes the last of its positions, or before
                the first batch when positions is empty
            consistency_token: Snapshot token the positions were read at
            batch_size: Max items per remote call
            multi_position: Merge same-uri pairs within a batch into one op

        Returns:
            The plan

        Raises:
            ValueError: On a non-positive batch size, a repeated position or a
                restore position that is not removed
        """
        if batch_size < 1:
            raise ValueError("Batch size must be positive")

        pairs = sorted(set(removals), key=lambda pair: pair[1], reverse=True)
        positions = [position for _, position in pairs]
        if len(positions) != len(set(positions)):
            raise ValueError("Each position can only be removed once")

        batch_of = {position: index // batch_size for index, (_, position) in enumerate(pairs)}
        leading: List[str] = []
        after: Dict[int, List[str]] = {}
        for uri, found in restores:
            found = list(found)
            missing = [position for position in found if position not in batch_of]
            if missing:
                raise ValueError(f"Restored uri {uri} has positions that are not removed: {missing}")
            if found:
                after.setdefault(max(batch_of[position] for position in found), []).append(uri)
            else:
                leading.append(uri)

        batches = _add_batches(leading, batch_size)
        for start in range(0, len(pairs), batch_size):
            chunk = pairs[start : start + batch_size]
            if multi_position:
                merged: Dict[str, List[int]] = {}
                for uri, position in chunk:
                    merged.setdefault(uri, []).append(position)
                ops = tuple(RemoveOp(uri, tuple(found)) for uri, found in merged.items())
            else:
                ops = tuple(RemoveOp(uri, (position,)) for uri, position in chunk)
            batches.append(MutationBatch(REMOVE, ops))
            batches.extend(_add_batches(after.get(start // batch_size, []), batch_size))

        batches.extend(_add_batches(list(additions), batch_size))
        return cls(collection_id, batches, consistency_token, batch_size, _sorted=True)

    @classmethod
    def replacement(
        cls,
        collection_id: str,
        uris: Iterable[str],
        consistency_token: Optional[str] = None,
        batch_size: int = 100,
    ) -> "MutationPlan":
        """Create a plan that rewrites the playlist as exactly these uris.

        The first batch replaces the whole playlist, later batches append
        the rest in order. No uris gives an empty plan, never a cleared
        playlist.

        Raises:
            ValueError: On a non-positive batch size
        """
        if batch_size < 1:
            raise ValueError("Batch size must be positive")
        batches = _add_batches(list(uris), batch_size)
        if batches:
            batches[0] = MutationBatch(REPLACE, batches[0].ops)
        return cls(collection_id, batches, consistency_token, batch_size, _sorted=True)

    def __len__(self) -> int:
        return len(self.batches)

    def __iter__(self):
        return iter(self.batches)

    def __repr__(self) -> str:
        return (
            f"MutationPlan({self.collection_id!r}, batches={len(self.batches)}, "
            f"removals={self.removal_count}, additions={self.addition_count})"
        )

    @property
    def is_empty(self) -> bool:
        """Whether the plan has nothing to do."""
        return not self.batches

    @property
    def removal_count(self) -> int:
        """Number of occurrences the plan removes."""
        return sum(batch.size for batch in self.batches if batch.kind == REMOVE)

    @property
    def addition_count(self) -> int:
        """Number of uris the plan appends or writes."""
        return sum(batch.size for batch in self.batches if batch.kind in (ADD, REPLACE))

    def leading_additions(self) -> List[str]:
        """Uris in the add batches before the first remove or replace batch."""
        uris = []
        for batch in self.batches:
            if batch.kind != ADD:
                break
            uris.extend(op.uri for op in batch.ops)
        return uris

    def removal_positions(self) -> List[int]:
        """Positions in the order they will be removed."""
        positions = []
        for batch in self.batches:
            if batch.kind == REMOVE:
                for op in batch.ops:
                    positions.extend(op.positions)
        return positions

    def remainder(self, start: int) -> "MutationPlan":
        """Plan made of the batches from index start onwards."""
        return MutationPlan(
            self.collection_id,
            self.batches[start:],
            self.consistency_token,
            self.batch_size,
            _sorted=True,
        )


@dataclass
class MutationResult:
    """Outcome of executing a plan."""

    plan: MutationPlan
    applied: List[MutationBatch] = field(default_factory=list)
    removed_count: int = 0
    added_count: int = 0
    consistency_token: Optional[str] = None

    @property
    def complete(self) -> bool:
        """Whether every batch of the plan was applied."""
        return len(self.applied) == len(self.plan)


@dataclass
class PartialMutationResult(MutationResult):
    """Outcome of a plan that stopped at a failed batch.

    Applied batches are not rolled back.
    """

    failed_at: Optional[MutationBatch] = None
    remaining_plan: Optional[MutationPlan] = None
    error: Optional[PlaylistDedupError] = None

    @property
    def complete(self) -> bool:
        return False


@dataclass
class SyncReport:
    """Summary of a deduplication run."""

    collection_id: str
    removed_count: int = 0
    added_count: int = 0
    planned_removals: int = 0
    planned_additions: int = 0
    failures: List[Exception] = field(default_factory=list)
    warnings: List[PartialFetchWarning] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)
    confirmed: bool = True
    attempts: int = 0
    # Uris whose occurrences were all removed but whose copy was never appended
    unrestored: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether the run finished without failures, warnings or lost items."""
        return not self.failures and not self.warnings and not self.unrestored
