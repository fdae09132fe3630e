"""Command for sorting a playlist."""

from ..mutator import SORT_KEYS
from .base import PlaylistCommand, log_report


class SortCommand(PlaylistCommand):
    """Command for rewriting a playlist in sorted order."""

    def __init__(self, synchronizer, playlist_id: str, criterion: str = "name", **kwargs):
        """Initialize command.

        Args:
            synchronizer: Synchronizer wired to the remote service
            playlist_id: ID of playlist to sort
            criterion: name or popularity
            **kwargs: Options accepted by PlaylistCommand
        """
        super().__init__(synchronizer, playlist_id, **kwargs)
        self.name = "sort"
        self.help = "Sort a playlist by name or popularity"
        self.criterion = criterion
        self.report = None

    def validate(self) -> None:
        """Validate command arguments."""
        super().validate()
        if self.criterion not in SORT_KEYS:
            raise ValueError(f"Unknown sort criterion: {self.criterion}")

    def _run(self) -> bool:
        snapshot = self.synchronizer.fetch_all(self.playlist_id)
        if snapshot.is_partial:
            self._logger.error("Playlist could not be fetched completely: %s", snapshot.warning)
            return False

        plan = self.synchronizer.plan_sort(snapshot, self.criterion)
        if plan.is_empty:
            self._logger.info("Nothing to sort in playlist %s", self.playlist_id)
            return True

        self._logger.info(
            "Sorting %d items by %s in %d calls", plan.addition_count, self.criterion, len(plan)
        )
        if self.dry_run:
            return True
        if not self.confirm(f"Rewrite the playlist sorted by {self.criterion}?"):
            self._logger.info("Sort cancelled")
            return True

        self.report = self.synchronizer.execute(plan)
        log_report(self.report)
        return self.report.success
