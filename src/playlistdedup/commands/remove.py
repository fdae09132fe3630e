"""Command for removing chosen items from a playlist."""

from typing import List

from ..mutator import plan_position_removals
from ..utils import describe_item
from .base import PlaylistCommand, log_report


class RemoveCommand(PlaylistCommand):
    """Command for removing the items at given positions."""

    def __init__(self, synchronizer, playlist_id: str, positions: List[int], **kwargs):
        super().__init__(synchronizer, playlist_id, **kwargs)
        self.name = "remove"
        self.help = "Remove items at given positions from a playlist"
        self.positions = positions

    def validate(self) -> None:
        """Validate command arguments."""
        super().validate()
        if not self.positions:
            raise ValueError("At least one position is required")
        if any(position < 0 for position in self.positions):
            raise ValueError("Positions must not be negative")

    def _run(self) -> bool:
        snapshot = self.synchronizer.fetch_all(self.playlist_id)
        if snapshot.is_partial:
            self._logger.error("Playlist could not be fetched completely: %s", snapshot.warning)
            return False

        plan = plan_position_removals(
            snapshot,
            self.positions,
            batch_size=self.synchronizer.batch_size,
            multi_position=self.synchronizer.multi_position,
        )
        self._logger.info("Selected %d items to remove:", plan.removal_count)
        for position in sorted(set(self.positions)):
            self._logger.info(" - %s", describe_item(snapshot.item_at(position)))

        if self.dry_run:
            return True
        if not self.confirm("Remove the selected items?"):
            self._logger.info("Removal cancelled")
            return True

        report = self.synchronizer.execute(plan)
        log_report(report)
        return report.success
