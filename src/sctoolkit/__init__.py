"""SoundCloud bulk toolkit

Merges playlists, turns likes into playlists, cleans up playlists and runs
bulk unlike/unfollow/resolve actions on top of the ``scclient`` package.
"""

from .bulk import BulkOperationRunner, bulk_unfollow, bulk_unlike
from .config import ToolkitConfig
from .exceptions import MergeError, ValidationError
from .likes import create_playlist_from_likes
from .maintenance import check_playlist_health, deduplicate_playlist
from .merge import MergeOrchestrator, is_mergeable
from .models import (
    BulkItemResult,
    BulkOperationResult,
    BulkStatus,
    CollectionSummary,
    DedupeReport,
    HealthReport,
    MergeRequest,
    MergeResult,
    MergeState,
    MergeStats,
    SourceStats,
)
from .resolver import resolve_batch
from .writer import PlaylistWriter, chunk, dedupe

__version__ = "1.0.0"

__all__ = [
    "MergeOrchestrator",
    "is_mergeable",
    "BulkOperationRunner",
    "bulk_unlike",
    "bulk_unfollow",
    "create_playlist_from_likes",
    "deduplicate_playlist",
    "check_playlist_health",
    "resolve_batch",
    "PlaylistWriter",
    "chunk",
    "dedupe",
    "ToolkitConfig",
    "MergeError",
    "ValidationError",
    "MergeRequest",
    "MergeResult",
    "MergeState",
    "MergeStats",
    "SourceStats",
    "CollectionSummary",
    "BulkItemResult",
    "BulkOperationResult",
    "BulkStatus",
    "DedupeReport",
    "HealthReport",
]
