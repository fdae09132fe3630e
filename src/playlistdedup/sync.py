"""Fetch, detect, confirm, mutate and report."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence

from .detector import detect_groups
from .errors import PlaylistDedupError, StaleSnapshotError, log_error
from .fetcher import CollectionFetcher
from .logging_config import get_logger
from .models import (
    CollectionSnapshot,
    DuplicateGroup,
    MutationPlan,
    PartialMutationResult,
    SyncReport,
)
from .mutator import KEEP_FIRST, BatchMutator, plan_removals, plan_sort

logger = get_logger(__name__)

ConfirmFn = Callable[[CollectionSnapshot, List[DuplicateGroup]], bool]


class PlaylistSynchronizer:
    """Runs deduplication workflows against remote playlists.

    A run always starts from a freshly fetched snapshot. A plan that turns
    out to be stale is thrown away and rebuilt from a new fetch.
    """

    def __init__(
        self,
        fetcher: CollectionFetcher,
        mutator: BatchMutator,
        confirm: Optional[ConfirmFn] = None,
        batch_size: Optional[int] = None,
        multi_position: bool = False,
        max_stale_retries: int = 2,
    ):
        """Initialize synchronizer.

        Args:
            fetcher: Playlist fetcher
            mutator: Plan executor
            confirm: Called with the snapshot and groups before any change;
                None confirms automatically
            batch_size: Max items per remote call
            multi_position: Merge same-uri removals within a batch
            max_stale_retries: Re-fetch and re-plan cycles allowed after a
                stale snapshot
        """
        self.fetcher = fetcher
        self.mutator = mutator
        self.confirm = confirm
        self.batch_size = batch_size
        self.multi_position = multi_position
        self.max_stale_retries = max_stale_retries

    def fetch_all(self, collection_id: str) -> CollectionSnapshot:
        """Fetch a fresh snapshot of a playlist."""
        return self.fetcher.fetch_all(collection_id)

    def plan_removals(
        self,
        snapshot: CollectionSnapshot,
        groups: Sequence[DuplicateGroup],
        policy: str = KEEP_FIRST,
        pending_restores: Sequence[str] = (),
    ) -> MutationPlan:
        """Build the removal plan for detected groups."""
        return plan_removals(
            snapshot,
            groups,
            policy,
            batch_size=self.batch_size,
            multi_position=self.multi_position,
            pending_restores=pending_restores,
        )

    def plan_sort(self, snapshot: CollectionSnapshot, criterion: str = "name") -> MutationPlan:
        """Build the plan that rewrites a playlist in sorted order."""
        return plan_sort(snapshot, criterion, batch_size=self.batch_size)

    def execute(self, plan: MutationPlan) -> SyncReport:
        """Apply a plan and report what was actually done."""
        report = SyncReport(
            collection_id=plan.collection_id,
            planned_removals=plan.removal_count,
            planned_additions=plan.addition_count,
        )
        self._apply(plan, report)
        return report

    def _apply(self, plan: MutationPlan, report: SyncReport) -> Optional[PartialMutationResult]:
        result = self.mutator.execute(plan)
        report.removed_count += result.removed_count
        report.added_count += result.added_count
        if isinstance(result, PartialMutationResult):
            report.failures.append(result.error)
            return result
        return None

    def deduplicate(self, collection_id: str, policy: str = KEEP_FIRST) -> SyncReport:
        """Remove duplicate occurrences from a playlist.

        Args:
            collection_id: ID of playlist to deduplicate
            policy: KEEP_FIRST or RESTORE_CANONICAL

        Returns:
            Report of removed and added counts against what was planned,
            with any failures
        """
        report = SyncReport(collection_id=collection_id)
        # Restored uris whose occurrences are already gone
        pending: List[str] = []

        while True:
            report.attempts += 1
            stale = None
            try:
                snapshot = self.fetch_all(collection_id)
            except StaleSnapshotError as e:
                stale = e
            else:
                if snapshot.is_partial:
                    report.warnings.append(snapshot.warning)
                    logger.warning("Not changing playlist %s: snapshot is incomplete", collection_id)
                    return self._unrestored(report, pending)

                groups = detect_groups(snapshot)
                report.groups = groups
                if not groups and not pending:
                    logger.info("No duplicates found in playlist %s", collection_id)
                    return report

                if groups:
                    logger.info("Found %d duplicate groups", len(groups))
                    if self.confirm is not None and not self.confirm(snapshot, groups):
                        logger.info("Deduplication cancelled")
                        report.confirmed = False
                        return self._unrestored(report, pending)

                plan = self.plan_removals(snapshot, groups, policy, pending)
                # Earlier stale cycles may already have applied some batches
                report.planned_removals = report.removed_count + plan.removal_count
                report.planned_additions = report.added_count + plan.addition_count

                partial = self._apply(plan, report)
                if partial is None:
                    logger.info(
                        "Removed %d duplicates, added %d items",
                        report.removed_count,
                        report.added_count,
                    )
                    return report
                pending = partial.remaining_plan.leading_additions()
                if not isinstance(partial.error, StaleSnapshotError):
                    logger.warning(
                        "Stopped after %d of %d batches", len(partial.applied), len(plan)
                    )
                    return self._unrestored(report, pending)
                stale = report.failures.pop()

            if report.attempts > self.max_stale_retries:
                report.failures.append(stale)
                log_error(stale, f"Giving up on playlist {collection_id}")
                return self._unrestored(report, pending)
            logger.warning("Playlist %s changed, fetching again: %s", collection_id, stale)

    @staticmethod
    def _unrestored(report: SyncReport, uris: Sequence[str]) -> SyncReport:
        if uris:
            report.unrestored.extend(uris)
            logger.error(
                "Playlist %s lost every occurrence of %d items: %s",
                report.collection_id,
                len(uris),
                ", ".join(uris),
            )
        return report

    def deduplicate_many(
        self,
        collection_ids: Sequence[str],
        policy: str = KEEP_FIRST,
        max_workers: int = 4,
    ) -> Dict[str, SyncReport]:
        """Deduplicate several different playlists in parallel.

        Each playlist's own plan still runs strictly in order. The client
        opens one HTTP session per worker thread unless a session was
        injected, in which case that session must be thread-safe.
        """
        unique_ids = list(dict.fromkeys(collection_ids))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            reports = pool.map(lambda cid: self._deduplicate_one(cid, policy), unique_ids)
            return dict(zip(unique_ids, reports))

    def _deduplicate_one(self, collection_id: str, policy: str) -> SyncReport:
        try:
            return self.deduplicate(collection_id, policy)
        except PlaylistDedupError as e:
            log_error(e, f"Failed to deduplicate playlist {collection_id}")
            return SyncReport(collection_id=collection_id, failures=[e], attempts=1)
