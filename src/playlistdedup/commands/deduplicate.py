"""Command for removing duplicate items from a playlist."""

from typing import List

from ..models import CollectionSnapshot, DuplicateGroup
from ..mutator import KEEP_FIRST, POLICIES
from ..utils import describe_item
from .base import PlaylistCommand, log_report


class DeduplicateCommand(PlaylistCommand):
    """Command for removing duplicate items from a playlist."""

    def __init__(self, synchronizer, playlist_id: str, policy: str = KEEP_FIRST, **kwargs):
        """Initialize command.

        Args:
            synchronizer: Synchronizer wired to the remote service
            playlist_id: ID of playlist to deduplicate
            policy: keep-first or restore
            **kwargs: Options accepted by PlaylistCommand
        """
        super().__init__(synchronizer, playlist_id, **kwargs)
        self.name = "dedupe"
        self.help = "Remove duplicate items from a playlist"
        self.policy = policy
        self.report = None

    def validate(self) -> None:
        """Validate command arguments."""
        super().validate()
        if self.policy not in POLICIES:
            raise ValueError(f"Unknown policy: {self.policy}")

    def _review(self, snapshot: CollectionSnapshot, groups: List[DuplicateGroup]) -> bool:
        self._logger.info("Duplicates found in %d items:", len(snapshot))
        for group in groups:
            self._logger.info(" * %s", ", ".join(describe_item(item) for item in group.items))

        if self.dry_run:
            plan = self.synchronizer.plan_removals(snapshot, groups, self.policy)
            self._logger.info(
                "Dry run: would remove %d items and append %d",
                plan.removal_count,
                plan.addition_count,
            )
            return False

        if self.policy == KEEP_FIRST:
            message = "Remove all duplicates and keep only the first occurrence of each item?"
        else:
            message = "Remove every occurrence of duplicated items and append one copy of each?"
        return self.confirm(message)

    def _run(self) -> bool:
        """Execute the command.

        Returns:
            True if successful, False otherwise
        """
        self.synchronizer.confirm = self._review
        self.report = self.synchronizer.deduplicate(self.playlist_id, self.policy)

        if not self.report.confirmed:
            if not self.dry_run:
                self._logger.info("Deduplication cancelled")
            return True

        log_report(self.report)
        return self.report.success
