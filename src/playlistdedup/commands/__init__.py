"""Command module initialization."""

from .base import PlaylistCommand
from .add import AddCommand  # noqa: F401
from .deduplicate import DeduplicateCommand  # noqa: F401
from .remove import RemoveCommand  # noqa: F401
from .sort import SortCommand  # noqa: F401

__all__ = ["PlaylistCommand", "AddCommand", "DeduplicateCommand", "RemoveCommand", "SortCommand"]
