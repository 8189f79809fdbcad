"""Single-playlist maintenance: duplicate removal and playability checks."""

import logging
from typing import Any, List, Optional

from scclient.cancellation import CancelToken
from scclient.models import Credential, Track

from .exceptions import ValidationError
from .models import DedupeReport, HealthReport, coerce_id
from .writer import PlaylistWriter, dedupe

logger = logging.getLogger(__name__)

PLAYABLE = "playable"
PREVIEW = "preview"
BLOCKED = "blocked"


def classify_track(track: Track) -> str:
    """Playability of a track; a missing ``access`` field counts as playable."""
    if track.access == BLOCKED:
        return BLOCKED
    if track.access == PREVIEW:
        return PREVIEW
    return PLAYABLE


async def deduplicate_playlist(
    client: Any,
    credential: Credential,
    playlist_id: Any,
    confirm: bool = False,
    inter_call_delay: float = 0.5,
    cancel: Optional[CancelToken] = None,
) -> DedupeReport:
    """Find repeated tracks in a playlist and optionally remove them.

    With ``confirm`` False only a preview is returned. With ``confirm`` True
    the playlist is rewritten keeping each track's first position; nothing is
    written when the playlist has no duplicates.
    """
    playlist_id = coerce_id(playlist_id, "playlist id")
    tracks = await client.get_playlist_tracks(playlist_id, credential, cancel=cancel)
    track_ids = [track.id for track in tracks]

    unique_ids = dedupe(track_ids)
    duplicate_ids: List[int] = []
    seen = set()
    for track_id in track_ids:
        if track_id in seen:
            duplicate_ids.append(track_id)
        seen.add(track_id)

    report = DedupeReport(
        playlist_id=playlist_id,
        original_count=len(track_ids),
        unique_ids=unique_ids,
        duplicate_ids=duplicate_ids,
    )
    logger.info(
        f"Playlist {playlist_id}: {report.original_count} tracks, "
        f"{report.duplicate_count} duplicates"
    )

    if not confirm:
        return report

    if duplicate_ids:
        writer = PlaylistWriter(client, credential, inter_call_delay=inter_call_delay, cancel=cancel)
        await writer.replace_tracks(playlist_id, unique_ids)
    report.applied = True
    return report


async def check_playlist_health(
    client: Any,
    credential: Credential,
    playlist_id: Any,
    remove: bool = False,
    inter_call_delay: float = 0.5,
    cancel: Optional[CancelToken] = None,
) -> HealthReport:
    """Report blocked and preview-only tracks; optionally drop them.

    Raises:
        ValidationError: If removal would leave the playlist empty
    """
    playlist_id = coerce_id(playlist_id, "playlist id")
    tracks = await client.get_playlist_tracks(playlist_id, credential, cancel=cancel)

    report = HealthReport(playlist_id=playlist_id)
    for track in tracks:
        status = classify_track(track)
        if status == BLOCKED:
            report.blocked_ids.append(track.id)
        elif status == PREVIEW:
            report.preview_ids.append(track.id)
        else:
            report.playable_ids.append(track.id)

    logger.info(
        f"Playlist {playlist_id} health: {report.health_percent}% "
        f"({report.issue_count} of {report.total} tracks with issues)"
    )

    if not remove or report.issue_count == 0:
        return report

    if not report.playable_ids:
        raise ValidationError(
            f"Refusing to remove all {report.total} tracks from playlist {playlist_id}"
        )

    writer = PlaylistWriter(client, credential, inter_call_delay=inter_call_delay, cancel=cancel)
    await writer.replace_tracks(playlist_id, report.playable_ids)
    report.removed = report.issue_count
    return report
