"""Command-line interface for playlist operations."""

import argparse
import logging
import sys
from typing import List, Optional

from . import auth, commands, config
from .client import PlaylistClient
from .errors import PlaylistDedupError
from .executor import RequestExecutor
from .fetcher import CollectionFetcher
from .logging_config import configure_logging
from .mutator import KEEP_FIRST, POLICIES, SORT_KEYS, BatchMutator
from .sync import PlaylistSynchronizer
from .utils import parse_playlist_id

logger = logging.getLogger(__name__)


def build_synchronizer(
    token_file: Optional[str] = None,
    multi_position: bool = False,
    show_progress: bool = True,
) -> PlaylistSynchronizer:
    """Wire credential manager, executor, client, fetcher and mutator.

    Raises:
        AuthError: If the token file cannot be loaded
    """
    store = auth.CredentialStore(token_file)
    credentials = auth.CredentialManager.from_store(store, auth.TokenRefresher())
    client = PlaylistClient(RequestExecutor(credentials))
    return PlaylistSynchronizer(
        fetcher=CollectionFetcher(client, show_progress=show_progress),
        mutator=BatchMutator(client, show_progress=show_progress),
        batch_size=config.MAX_BATCH_SIZE,
        multi_position=multi_position,
    )


def _playlist_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "playlist",
        nargs="?",
        default=config.DEFAULT_PLAYLIST_ID,
        help="Playlist ID, URI or URL (defaults to SPOTIFY_PLAYLIST_ID)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(description="Spotify playlist deduplication and sorting tool")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--token-file", help="Path to the token file")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Dedupe command
    dedupe_parser = subparsers.add_parser("dedupe", help="Remove duplicate items from a playlist")
    _playlist_argument(dedupe_parser)
    dedupe_parser.add_argument(
        "--policy",
        choices=POLICIES,
        default=KEEP_FIRST,
        help="keep-first keeps the first occurrence; restore re-adds one copy at the end",
    )
    dedupe_parser.add_argument(
        "--dry-run", action="store_true", help="Show duplicates without changing the playlist"
    )
    dedupe_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    dedupe_parser.add_argument(
        "--multi-position",
        action="store_true",
        help="Send several positions of the same item in one removal entry",
    )

    # Remove command
    remove_parser = subparsers.add_parser("remove", help="Remove items at given positions")
    remove_parser.add_argument("playlist", help="Playlist ID, URI or URL")
    remove_parser.add_argument("positions", nargs="+", type=int, help="0-based positions")
    remove_parser.add_argument(
        "--dry-run", action="store_true", help="Show selected items without removing them"
    )
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # Add command
    add_parser = subparsers.add_parser("add", help="Append items to a playlist")
    add_parser.add_argument("playlist", help="Playlist ID, URI or URL")
    add_parser.add_argument("uris", nargs="+", help="Item URIs (spotify:track:...)")

    # Sort command
    sort_parser = subparsers.add_parser("sort", help="Sort a playlist")
    _playlist_argument(sort_parser)
    sort_parser.add_argument(
        "--by",
        choices=sorted(SORT_KEYS),
        default="name",
        help="name sorts A to Z; popularity puts the most popular first",
    )
    sort_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be sorted without changing it"
    )
    sort_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def create_command(args: argparse.Namespace, synchronizer: PlaylistSynchronizer):
    """Create the command object for parsed arguments.

    Raises:
        ValueError: If the playlist argument is missing or invalid
    """
    if not args.playlist:
        raise ValueError("Playlist ID is required")
    playlist_id = parse_playlist_id(args.playlist)

    if args.command == "dedupe":
        return commands.DeduplicateCommand(
            synchronizer,
            playlist_id,
            policy=args.policy,
            assume_yes=args.yes,
            dry_run=args.dry_run,
        )
    if args.command == "remove":
        return commands.RemoveCommand(
            synchronizer,
            playlist_id,
            args.positions,
            assume_yes=args.yes,
            dry_run=args.dry_run,
        )
    if args.command == "add":
        return commands.AddCommand(synchronizer, playlist_id, args.uris)
    if args.command == "sort":
        return commands.SortCommand(
            synchronizer,
            playlist_id,
            criterion=args.by,
            assume_yes=args.yes,
            dry_run=args.dry_run,
        )
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        int: Exit code
    """
    parser = create_parser()
    argv = sys.argv[1:] if argv is None else argv
    try:
        args = parser.parse_args(args=argv if argv else ["--help"])
    except SystemExit as e:
        return 1 if e.code == 2 else e.code

    configure_logging(debug=args.debug)

    if not args.command:
        parser.print_help()
        return 1

    try:
        synchronizer = build_synchronizer(
            token_file=args.token_file,
            multi_position=getattr(args, "multi_position", False),
        )
        command = create_command(args, synchronizer)
        return 0 if command.run() else 1
    except (PlaylistDedupError, ValueError) as e:
        logger.error("Command failed: %s", str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
