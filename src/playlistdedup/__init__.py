"""Spotify playlist deduplication tool."""

__version__ = "0.1.0"

# Import all public components
from .auth import Credential, CredentialManager, CredentialStore, TokenRefresher
from .cli import main
from .client import PlaylistClient
from .commands import PlaylistCommand
from .detector import detect_groups, grouping_key
from .errors import (
    AuthError,
    CollectionNotFoundError,
    PartialFetchWarning,
    PlaylistDedupError,
    RemoteError,
    StaleSnapshotError,
    ThrottleSignal,
)
from .executor import RequestExecutor
from .fetcher import CollectionFetcher
from .logging_config import configure_logging, get_logger
from .models import (
    CollectionSnapshot,
    DuplicateGroup,
    MutationPlan,
    MutationResult,
    PartialMutationResult,
    RemoteItem,
    SyncReport,
)
from .mutator import (
    KEEP_FIRST,
    RESTORE_CANONICAL,
    BatchMutator,
    plan_additions,
    plan_position_removals,
    plan_removals,
)
from .sync import PlaylistSynchronizer

# Import config variables
from .config import (  # noqa: F401
    TOKEN_FILE,
    PAGE_SIZE,
    MAX_BATCH_SIZE,
    REFRESH_MARGIN_SECONDS,
)

# Configure logging
configure_logging()

# Get logger for this module
logger = get_logger(__name__)
