"""Batched playlist writes shared by merge and likes-to-playlist.

The upstream accepts at most 100 track references per create/update call and
at most 500 tracks per playlist. A target is written by creating it with the
first 100 ids and then replacing its track list with the cumulative prefix
through 200, 300, ... ids. Lists longer than 500 are split into independent
targets titled ``"<title> (i/total)"``.
"""

import logging
from typing import Any, Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar

import httpx

from scclient.cancellation import CancelToken, sleep
from scclient.exceptions import SoundCloudError
from scclient.models import PLAYLIST_TRACK_LIMIT, WRITE_BATCH_LIMIT, Credential

from .models import CollectionSummary

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


def dedupe(ids: Iterable[T]) -> List[T]:
    """Drop repeated ids, keeping the position of each first occurrence.

    Examples:
        >>> dedupe([1, 2, 2, 3, 1, 4])
        [1, 2, 3, 4]
    """
    seen = set()
    unique: List[T] = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def chunk(ids: Sequence[T], size: int) -> List[List[T]]:
    """Split ``ids`` into consecutive chunks of at most ``size`` items.

    Examples:
        >>> [len(part) for part in chunk(list(range(650)), 500)]
        [500, 150]
    """
    if size < 1:
        raise ValueError("size must be >= 1")
    return [list(ids[start:start + size]) for start in range(0, len(ids), size)]


def split_title(title: str, index: int, total: int) -> str:
    """Title for target ``index`` (1-based) of ``total``; unchanged when total is 1."""
    if total <= 1:
        return title
    return f"{title} ({index}/{total})"


class PlaylistWriter:
    """Write track id lists into new playlists, respecting upstream limits.

    Every created playlist id is appended to ``created_ids`` as soon as the
    create call returns, so callers can compensate after a later failure.

    Attributes:
        client: SoundCloudClient (or compatible) used for writes and re-fetches
        credential: Credential for every call
        inter_call_delay: Pause between write calls of one target (seconds)
        target_pause: Pause between consecutive targets (seconds)
        created_ids: Playlists created by this writer, in creation order
    """

    def __init__(
        self,
        client: Any,
        credential: Credential,
        inter_call_delay: float = 0.5,
        target_pause: float = 1.0,
        cancel: Optional[CancelToken] = None,
        sharing: str = "public",
        batch_size: int = WRITE_BATCH_LIMIT,
        playlist_limit: int = PLAYLIST_TRACK_LIMIT,
    ):
        self.client = client
        self.credential = credential
        self.inter_call_delay = inter_call_delay
        self.target_pause = target_pause
        self.cancel = cancel
        self.sharing = sharing
        self.batch_size = batch_size
        self.playlist_limit = playlist_limit
        self.created_ids: List[int] = []

    async def write_target(
        self, title: str, track_ids: Sequence[int], description: str = ""
    ) -> CollectionSummary:
        """Create one playlist holding ``track_ids`` (at most ``playlist_limit``).

        Returns:
            Unverified CollectionSummary with the locally computed count
        """
        ids = list(track_ids)
        if len(ids) > self.playlist_limit:
            raise ValueError(
                f"A playlist holds at most {self.playlist_limit} tracks (got {len(ids)})"
            )

        created = await self.client.create_playlist(
            title,
            self.credential,
            description=description,
            track_ids=ids[:self.batch_size],
            sharing=self.sharing,
            cancel=self.cancel,
        )
        self.created_ids.append(created.id)
        logger.debug(f"Created playlist {created.id} with first {min(len(ids), self.batch_size)} tracks")

        for end in range(self.batch_size * 2, len(ids) + self.batch_size, self.batch_size):
            await sleep(self.inter_call_delay, self.cancel)
            prefix = ids[:end]
            await self.client.update_playlist_tracks(
                created.id, prefix, self.credential, cancel=self.cancel
            )
            logger.debug(f"Extended playlist {created.id} to {len(prefix)} tracks")

        return CollectionSummary(
            id=created.id,
            title=title,
            track_ids=ids,
            track_count=len(ids),
            verified=False,
            permalink_url=created.permalink_url,
        )

    async def write_split(
        self,
        title: str,
        track_ids: Sequence[int],
        description: str = "",
        verify: bool = False,
        on_stage: Optional[Callable[[str], None]] = None,
    ) -> List[CollectionSummary]:
        """Write ``track_ids`` into one target, or several when over the cap.

        With ``verify``, each target is re-fetched as soon as its last write
        returns, before the next target is started. ``on_stage`` is told
        ``"writing_batches"`` or ``"verifying"`` whenever the work switches.
        """
        parts = chunk(list(track_ids), self.playlist_limit)
        total = len(parts)
        summaries: List[CollectionSummary] = []

        for index, part in enumerate(parts, start=1):
            if on_stage is not None:
                on_stage("writing_batches")
            if index > 1:
                await sleep(self.target_pause, self.cancel)
            target_title = split_title(title, index, total)
            logger.info(f"Writing target {index}/{total} '{target_title}' ({len(part)} tracks)")
            summary = await self.write_target(target_title, part, description)
            summaries.append(summary)

            if verify:
                if on_stage is not None:
                    on_stage("verifying")
                await self.verify(summary)

        return summaries

    async def verify(self, summary: CollectionSummary) -> CollectionSummary:
        """Re-fetch a written target and adopt the server-reported track count.

        A failed re-fetch keeps the local count and leaves ``verified`` False.
        """
        try:
            playlist = await self.client.get_playlist(summary.id, self.credential, cancel=self.cancel)
        except (SoundCloudError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                f"Could not verify playlist {summary.id} ({type(e).__name__}); "
                f"using local count {len(summary.track_ids)}"
            )
            summary.track_count = len(summary.track_ids)
            summary.verified = False
            return summary

        if playlist.track_count != len(summary.track_ids):
            logger.warning(
                f"Playlist {summary.id} reports {playlist.track_count} tracks, "
                f"expected {len(summary.track_ids)}"
            )
        summary.track_count = playlist.track_count
        summary.verified = True
        if playlist.permalink_url:
            summary.permalink_url = playlist.permalink_url
        return summary

    async def replace_tracks(self, playlist_id: int, track_ids: Sequence[int]) -> int:
        """Rewrite an existing playlist's track list within the write-batch limit.

        The list is replaced by its first 100 ids and then by growing prefixes,
        so the playlist is briefly shorter than its final length.

        Returns:
            Number of tracks written
        """
        ids = list(track_ids)
        if len(ids) > self.playlist_limit:
            raise ValueError(
                f"A playlist holds at most {self.playlist_limit} tracks (got {len(ids)})"
            )

        ends = list(range(self.batch_size, len(ids) + self.batch_size, self.batch_size)) or [0]
        for call, end in enumerate(ends):
            if call > 0:
                await sleep(self.inter_call_delay, self.cancel)
            await self.client.update_playlist_tracks(
                playlist_id, ids[:end], self.credential, cancel=self.cancel
            )
        logger.info(f"Rewrote playlist {playlist_id} with {len(ids)} tracks in {len(ends)} call(s)")
        return len(ids)


async def delete_playlists(client: Any, credential: Credential, playlist_ids: Sequence[int]) -> List[int]:
    """Best-effort delete of ``playlist_ids``; returns the ids actually deleted."""
    deleted: List[int] = []
    for playlist_id in playlist_ids:
        try:
            await client.delete_playlist(playlist_id, credential)
        except (SoundCloudError, httpx.HTTPError) as e:
            logger.error(f"Could not delete playlist {playlist_id}: {e}")
            continue
        deleted.append(playlist_id)
    return deleted
