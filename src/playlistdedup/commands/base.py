"""Base command class for playlist operations."""

from typing import Callable, Optional

from ..errors import PlaylistDedupError
from ..logging_config import get_logger
from ..sync import PlaylistSynchronizer

# Get logger for this module
logger = get_logger(__name__)


def prompt_yes_no(message: str) -> bool:
    """Ask the user to confirm on stdin."""
    answer = input(f"{message} [y/N]: ")
    return answer.strip().lower() in ("y", "yes")


class PlaylistCommand:
    """Base class for playlist commands."""

    def __init__(
        self,
        synchronizer: PlaylistSynchronizer,
        playlist_id: str,
        assume_yes: bool = False,
        dry_run: bool = False,
        prompt: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize command.

        Args:
            synchronizer: Synchronizer wired to the remote service
            playlist_id: ID of playlist to operate on
            assume_yes: Skip confirmation prompts
            dry_run: Show what would change without changing anything
            prompt: Confirmation function, defaults to a stdin prompt
        """
        self.synchronizer = synchronizer
        self.playlist_id = playlist_id
        self.assume_yes = assume_yes
        self.dry_run = dry_run
        self.prompt = prompt or prompt_yes_no
        self._logger = logger
        self._validated = False

    def validate(self) -> None:
        """Validate command parameters.

        Raises:
            ValueError: If parameters are invalid
        """
        if not self.synchronizer:
            raise ValueError("Synchronizer is required")
        if not self.playlist_id:
            raise ValueError("Playlist ID is required")
        self._validated = True

    def confirm(self, message: str) -> bool:
        """Ask for confirmation unless it was given up front."""
        if self.assume_yes:
            return True
        return self.prompt(message)

    def run(self) -> bool:
        """Run the command.

        Returns:
            bool: True if successful, False otherwise
        """
        try:
            self.validate()
            return self._run()
        except PlaylistDedupError as e:
            self._logger.error("Command failed: %s", str(e))
            return False

    def _run(self) -> bool:
        """Internal run implementation.

        Returns:
            bool: True if successful, False otherwise
        """
        return False


def log_report(report) -> None:
    """Log what a run actually changed against what it planned."""
    logger.info(
        "Removed %d of %d planned, added %d of %d planned",
        report.removed_count,
        report.planned_removals,
        report.added_count,
        report.planned_additions,
    )
    for failure in report.failures:
        logger.error("Failure: %s", str(failure))
    for warning in report.warnings:
        logger.warning("Warning: %s", str(warning))
    if report.unrestored:
        logger.error("Not restored: %s", ", ".join(report.unrestored))
