"""Turn liked tracks into playlists."""

import logging
from datetime import date
from typing import Any, Optional, Sequence

from scclient.cancellation import CancelToken
from scclient.models import Credential

from .exceptions import MergeError, ValidationError
from .models import MergeResult, MergeStats, SourceStats, clean_title, coerce_ids
from .writer import PlaylistWriter, dedupe, delete_playlists

logger = logging.getLogger(__name__)

MAX_LIKED_TRACKS = 2000


def default_likes_title(today: Optional[date] = None) -> str:
    return f"My Liked Tracks - {(today or date.today()).isoformat()}"


async def create_playlist_from_likes(
    client: Any,
    credential: Credential,
    title: Optional[str] = None,
    track_ids: Optional[Sequence[Any]] = None,
    inter_call_delay: float = 0.5,
    target_pause: float = 1.0,
    rollback_on_failure: bool = True,
    cancel: Optional[CancelToken] = None,
) -> MergeResult:
    """Create playlist(s) from liked tracks.

    Without ``track_ids`` every liked track is fetched. Repeated ids are
    dropped, and more than 500 tracks are split into ``(i/total)`` targets.

    Args:
        client: SoundCloudClient
        credential: Credential for every upstream call
        title: Target title (default: "My Liked Tracks - <date>")
        track_ids: Explicit selection of 1..2000 liked track ids
        inter_call_delay: Pause between write calls
        target_pause: Pause between targets
        rollback_on_failure: Delete created targets if a later write fails
        cancel: Optional cancel token

    Returns:
        MergeResult whose stats carry a single ``likes`` source entry

    Raises:
        ValidationError: Invalid title or id selection, or no liked tracks
        MergeError: A write failed after it started
    """
    target_title = clean_title(title) or default_likes_title()
    source = SourceStats(id="likes")

    if track_ids is None:
        likes = await client.get_likes(credential, limit=MAX_LIKED_TRACKS, cancel=cancel)
        selected = [track.id for track in likes]
        source.fetched = len(selected)
        logger.info(f"Fetched {len(selected)} liked tracks")
    else:
        selected = coerce_ids(track_ids, label="track id", min_count=1, max_count=MAX_LIKED_TRACKS)
        source.fetched = len(selected)

    ids = dedupe(selected)
    if not ids:
        raise ValidationError("No liked tracks to add")
    source.accepted = len(ids)

    stats = MergeStats(sources=[source], unique_before_cap=len(ids))
    writer = PlaylistWriter(
        client,
        credential,
        inter_call_delay=inter_call_delay,
        target_pause=target_pause,
        cancel=cancel,
    )

    stage = "writing_batches"

    def enter_stage(name: str) -> None:
        nonlocal stage
        stage = name

    try:
        collections = await writer.write_split(
            target_title,
            ids,
            description=f"Playlist created from {len(ids)} liked tracks",
            verify=True,
            on_stage=enter_stage,
        )
        stats.verified = all(collection.verified for collection in collections)
    except Exception as e:
        rolled_back = []
        if rollback_on_failure and writer.created_ids:
            rolled_back = await delete_playlists(client, credential, writer.created_ids)
        logger.error(f"Likes playlist failed during {stage}: {e}")
        raise MergeError(
            f"Likes playlist failed during {stage}: {e}",
            stage=stage,
            created_collection_ids=writer.created_ids,
            rolled_back_collection_ids=rolled_back,
            cause=e,
        ) from e

    stats.total_written = sum(len(collection.track_ids) for collection in collections)
    stats.collections_created = len(collections)
    logger.info(
        f"Created {stats.collections_created} playlist(s) from {stats.total_written} liked tracks"
    )
    return MergeResult(collections=collections, stats=stats)
