"""Tests for the base, remove, add and sort commands."""

import unittest
from unittest.mock import MagicMock, patch

import pytest

from src.playlistdedup.client import PlaylistClient
from src.playlistdedup.commands import AddCommand, PlaylistCommand, RemoveCommand, SortCommand
from src.playlistdedup.commands.base import prompt_yes_no
from src.playlistdedup.errors import PartialFetchWarning
from src.playlistdedup.fetcher import CollectionFetcher
from src.playlistdedup.models import CollectionSnapshot
from src.playlistdedup.mutator import BatchMutator
from src.playlistdedup.sync import PlaylistSynchronizer


@pytest.fixture
def synchronizer(client):
    """Synchronizer talking to the fake service."""
    return PlaylistSynchronizer(CollectionFetcher(client), BatchMutator(client))


class TestPlaylistCommand(unittest.TestCase):
    """Test cases for PlaylistCommand."""

    def setUp(self):
        """Set up test fixtures."""
        self.synchronizer = MagicMock(spec=PlaylistSynchronizer)

    def test_validate_requires_synchronizer(self):
        """Test validation without a synchronizer."""
        with self.assertRaises(ValueError) as cm:
            PlaylistCommand(None, "pl1").validate()
        self.assertEqual(str(cm.exception), "Synchronizer is required")

    def test_validate_requires_playlist(self):
        """Test validation without a playlist."""
        with self.assertRaises(ValueError) as cm:
            PlaylistCommand(self.synchronizer, "").validate()
        self.assertEqual(str(cm.exception), "Playlist ID is required")

    def test_run_default_implementation(self):
        """Test the base run does nothing."""
        self.assertFalse(PlaylistCommand(self.synchronizer, "pl1").run())

    def test_confirm_assume_yes(self):
        """Test that assume_yes skips the prompt."""
        prompt = MagicMock()
        cmd = PlaylistCommand(self.synchronizer, "pl1", assume_yes=True, prompt=prompt)

        self.assertTrue(cmd.confirm("Proceed?"))
        prompt.assert_not_called()

    def test_confirm_uses_prompt(self):
        """Test that the prompt decides without assume_yes."""
        cmd = PlaylistCommand(self.synchronizer, "pl1", prompt=MagicMock(return_value=False))
        self.assertFalse(cmd.confirm("Proceed?"))

    @patch("builtins.input", return_value="Y")
    def test_prompt_yes_no(self, mock_input):
        """Test the stdin prompt."""
        self.assertTrue(prompt_yes_no("Proceed?"))
        mock_input.assert_called_once_with("Proceed? [y/N]: ")

    @patch("builtins.input", return_value="")
    def test_prompt_yes_no_default(self, mock_input):
        """Test that an empty answer means no."""
        self.assertFalse(prompt_yes_no("Proceed?"))


def test_remove_command(synchronizer, spotify):
    """Test removing chosen positions."""
    cmd = RemoveCommand(synchronizer, "pl1", [0, 3], assume_yes=True)

    assert cmd.run()

    assert spotify.uris("pl1") == ["spotify:track:b", "spotify:track:a2", "spotify:track:b"]


def test_remove_command_dry_run(synchronizer, spotify):
    """Test that dry run removes nothing."""
    assert RemoveCommand(synchronizer, "pl1", [1], dry_run=True).run()
    assert len(spotify.uris("pl1")) == 5


def test_remove_command_declined(synchronizer, spotify):
    """Test declining the removal."""
    cmd = RemoveCommand(synchronizer, "pl1", [1], prompt=MagicMock(return_value=False))

    assert cmd.run()
    assert len(spotify.uris("pl1")) == 5


def test_remove_command_validation(synchronizer):
    """Test position validation."""
    with pytest.raises(ValueError, match="At least one position"):
        RemoveCommand(synchronizer, "pl1", []).validate()
    with pytest.raises(ValueError, match="must not be negative"):
        RemoveCommand(synchronizer, "pl1", [-1]).validate()


def test_remove_command_position_out_of_range(synchronizer):
    """Test choosing a position past the end of the playlist."""
    with pytest.raises(ValueError):
        RemoveCommand(synchronizer, "pl1", [9], assume_yes=True).run()


def test_remove_command_partial_snapshot():
    """Test that an incomplete fetch stops the removal."""
    synchronizer = MagicMock(spec=PlaylistSynchronizer)
    synchronizer.fetch_all.return_value = CollectionSnapshot(
        "pl1", (), warning=PartialFetchWarning("pl1", 0, "no items")
    )

    assert not RemoveCommand(synchronizer, "pl1", [0], assume_yes=True).run()
    synchronizer.execute.assert_not_called()


def test_add_command(synchronizer, spotify):
    """Test appending items."""
    cmd = AddCommand(synchronizer, "pl1", ["spotify:track:x", "spotify:track:y"])

    assert cmd.run()

    assert spotify.uris("pl1")[-2:] == ["spotify:track:x", "spotify:track:y"]


def test_add_command_dry_run(synchronizer, spotify):
    """Test that dry run adds nothing."""
    assert AddCommand(synchronizer, "pl1", ["spotify:track:x"], dry_run=True).run()
    assert len(spotify.uris("pl1")) == 5


def test_add_command_validation(synchronizer):
    """Test URI validation."""
    with pytest.raises(ValueError, match="At least one URI"):
        AddCommand(synchronizer, "pl1", []).validate()
    with pytest.raises(ValueError, match="Invalid item URI"):
        AddCommand(synchronizer, "pl1", ["track:x"]).validate()


def test_add_command_missing_playlist_fails(synchronizer):
    """Test adding to a playlist that does not exist."""
    assert not AddCommand(synchronizer, "missing", ["spotify:track:x"]).run()


def test_sort_command_by_name(synchronizer, spotify):
    """Test sorting by name ignores case and keeps ties in order."""
    cmd = SortCommand(synchronizer, "pl1", assume_yes=True)

    assert cmd.run()

    assert spotify.uris("pl1") == [
        "spotify:track:a",
        "spotify:track:a2",
        "spotify:track:b",
        "spotify:track:b",
        "spotify:track:c",
    ]
    assert cmd.report.added_count == 5


def test_sort_command_by_popularity(executor, fake_spotify_class, track_factory):
    """Test sorting puts the most popular items first."""
    spotify = fake_spotify_class(
        {
            "pop": [
                track_factory("Quiet", "X", popularity=10),
                track_factory("Hit", "Y", popularity=90),
                track_factory("Unknown", "Z"),
                track_factory("Middle", "W", popularity=50),
            ]
        }
    )
    client = PlaylistClient(executor, session=spotify)
    sync = PlaylistSynchronizer(CollectionFetcher(client), BatchMutator(client))

    assert SortCommand(sync, "pop", criterion="popularity", assume_yes=True).run()

    assert spotify.uris("pop") == [
        "spotify:track:hit",
        "spotify:track:middle",
        "spotify:track:quiet",
        "spotify:track:unknown",
    ]


def test_sort_command_large_playlist(executor, fake_spotify_class, track_factory):
    """Test that a long playlist is replaced once and the rest appended."""
    names = [f"Song {n:03d}" for n in range(149, -1, -1)]
    spotify = fake_spotify_class({"big": [track_factory(name, "X") for name in names]})
    client = PlaylistClient(executor, session=spotify)
    sync = PlaylistSynchronizer(CollectionFetcher(client), BatchMutator(client))

    assert SortCommand(sync, "big", assume_yes=True).run()

    writes = [(call[0], len(call[3]["uris"])) for call in spotify.calls if call[0] in ("PUT", "POST")]
    assert writes == [("PUT", 100), ("POST", 50)]
    assert spotify.uris("big") == [f"spotify:track:song{n:03d}" for n in range(150)]


def test_sort_command_drops_unavailable_items(executor, fake_spotify_class, track_factory):
    """Test that entries without a track are not written back."""
    spotify = fake_spotify_class(
        {"gaps": [track_factory("B", "X"), {"track": None}, track_factory("A", "Y")]}
    )
    client = PlaylistClient(executor, session=spotify)
    sync = PlaylistSynchronizer(CollectionFetcher(client), BatchMutator(client))

    assert SortCommand(sync, "gaps", assume_yes=True).run()

    assert spotify.uris("gaps") == ["spotify:track:a", "spotify:track:b"]


def test_sort_command_dry_run(synchronizer, spotify):
    """Test that dry run leaves the order alone."""
    before = spotify.uris("pl1")
    prompt = MagicMock()

    assert SortCommand(synchronizer, "pl1", dry_run=True, prompt=prompt).run()

    prompt.assert_not_called()
    assert spotify.uris("pl1") == before


def test_sort_command_declined(synchronizer, spotify):
    """Test declining the rewrite."""
    before = spotify.uris("pl1")

    assert SortCommand(synchronizer, "pl1", prompt=MagicMock(return_value=False)).run()

    assert spotify.uris("pl1") == before


def test_sort_command_validation(synchronizer):
    """Test sort criterion validation."""
    with pytest.raises(ValueError, match="Unknown sort criterion"):
        SortCommand(synchronizer, "pl1", criterion="length").validate()


def test_sort_command_stale_playlist_fails(synchronizer, spotify):
    """Test that a playlist changed after the fetch is not overwritten."""
    original = synchronizer.fetcher.fetch_all

    def fetch_then_edit(collection_id):
        snapshot = original(collection_id)
        spotify.external_edit("pl1", {"track": {"uri": "spotify:track:z", "name": "Z", "artists": []}})
        return snapshot

    synchronizer.fetcher.fetch_all = fetch_then_edit

    assert not SortCommand(synchronizer, "pl1", assume_yes=True).run()

    assert spotify.uris("pl1")[0] == "spotify:track:z"
    assert not [call for call in spotify.calls if call[0] == "PUT"]
