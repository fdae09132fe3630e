"""Command for appending items to a playlist."""

from typing import List

from ..mutator import plan_additions
from .base import PlaylistCommand, log_report


class AddCommand(PlaylistCommand):
    """Command for appending items to the end of a playlist."""

    def __init__(self, synchronizer, playlist_id: str, uris: List[str], **kwargs):
        super().__init__(synchronizer, playlist_id, **kwargs)
        self.name = "add"
        self.help = "Append items to a playlist"
        self.uris = uris

    def validate(self) -> None:
        """Validate command arguments."""
        super().validate()
        if not self.uris:
            raise ValueError("At least one URI is required")
        for uri in self.uris:
            if not uri.startswith("spotify:"):
                raise ValueError(f"Invalid item URI: {uri}")

    def _run(self) -> bool:
        plan = plan_additions(self.playlist_id, self.uris, batch_size=self.synchronizer.batch_size)
        if self.dry_run:
            self._logger.info("Dry run: would add %d items in %d batches", plan.addition_count, len(plan))
            return True

        report = self.synchronizer.execute(plan)
        log_report(report)
        return report.success
