"""Merge several source playlists into one (or several) deduplicated targets.

Workflow:
    idle → fetching_sources → deduplicating → writing_batches → verifying → complete

Each target is verified as soon as it is written, so a split merge moves
between ``writing_batches`` and ``verifying`` once per target.

Any failure after validation moves the run to ``failed`` and raises
``MergeError``. Targets created before the failure are deleted again when
rollback is enabled.
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

from scclient.cancellation import CancelToken, sleep
from scclient.models import Credential, Track

from .config import ToolkitConfig
from .exceptions import MergeError, ValidationError
from .models import MergeRequest, MergeResult, MergeState, MergeStats, SourceStats
from .writer import PlaylistWriter, dedupe, delete_playlists

logger = logging.getLogger(__name__)


def is_mergeable(track: Track) -> bool:
    """Decide whether a source track is carried into the merge.

    Rejects blocked tracks, tracks explicitly marked non-streamable and
    tracks whose play and like counts are both known to be zero. Missing
    fields never reject a track.
    """
    if track.access == "blocked":
        return False
    if track.streamable is False:
        return False
    if track.playback_count == 0 and track.likes_count == 0:
        return False
    return True


def default_merge_title(now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
    return f"Merged Playlist - {stamp}"


class MergeOrchestrator:
    """Run playlist merges through a SoundCloudClient.

    All upstream calls are strictly sequential with fixed pauses in between.
    One orchestrator may run several merges one after another; ``state``
    reflects the most recent run.

    Example:
        >>> orchestrator = MergeOrchestrator(client, inter_call_delay=0.5)
        >>> result = await orchestrator.merge([111, 222], credential, title="Mix")
        >>> result.to_dict()["stats"]["uniqueBeforeCap"]
    """

    def __init__(
        self,
        client: Any,
        inter_call_delay: float = 0.5,
        target_pause: float = 1.0,
        rollback_on_failure: bool = True,
        track_filter: Callable[[Track], bool] = is_mergeable,
        on_state_change: Optional[Callable[[MergeState], None]] = None,
    ):
        self.client = client
        self.inter_call_delay = inter_call_delay
        self.target_pause = target_pause
        self.rollback_on_failure = rollback_on_failure
        self.track_filter = track_filter
        self.on_state_change = on_state_change
        self._state = MergeState.IDLE

    @classmethod
    def from_config(cls, client: Any, config: ToolkitConfig, **kwargs) -> "MergeOrchestrator":
        return cls(
            client,
            inter_call_delay=config.inter_call_delay,
            target_pause=config.target_pause,
            rollback_on_failure=config.merge_rollback,
            **kwargs,
        )

    @property
    def state(self) -> MergeState:
        return self._state

    def _transition(self, state: MergeState) -> None:
        logger.info(f"Merge state: {self._state} → {state}")
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _enter_stage(self, stage: str) -> None:
        state = MergeState(stage)
        if state is not self._state:
            self._transition(state)

    async def merge(
        self,
        source_ids: Sequence[Any],
        credential: Credential,
        title: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ) -> MergeResult:
        """Merge ``source_ids`` into new playlist(s).

        Args:
            source_ids: 2..10 playlist ids (ints or numeric strings), in priority order
            credential: Credential for every upstream call
            title: Target title (default: timestamped name)
            cancel: Optional cancel token checked at every suspension point

        Returns:
            MergeResult with one collection, or several when over 500 tracks

        Raises:
            ValidationError: Invalid input, raised before any upstream call
            MergeError: The merge aborted after it started
        """
        request = MergeRequest(source_ids=source_ids, title=title)
        request.validate()
        target_title = request.title or default_merge_title()

        self._state = MergeState.IDLE
        writer = PlaylistWriter(
            self.client,
            credential,
            inter_call_delay=self.inter_call_delay,
            target_pause=self.target_pause,
            cancel=cancel,
        )
        stats = MergeStats()

        logger.info(f"Starting merge of {len(request.source_ids)} playlists into '{target_title}'")
        try:
            self._transition(MergeState.FETCHING_SOURCES)
            accepted = await self._fetch_sources(request.source_ids, credential, stats, cancel)

            self._transition(MergeState.DEDUPLICATING)
            track_ids = dedupe(track.id for track in accepted)
            stats.unique_before_cap = len(track_ids)
            logger.info(f"{len(track_ids)} unique tracks after deduplication")
            if not track_ids:
                raise ValidationError("No mergeable tracks found in the source playlists")

            collections = await writer.write_split(
                target_title,
                track_ids,
                description=f"Merged from {len(request.source_ids)} playlists",
                verify=True,
                on_stage=self._enter_stage,
            )
            stats.verified = all(collection.verified for collection in collections)
        except Exception as e:
            stage = self._state
            self._transition(MergeState.FAILED)
            rolled_back = await self._rollback(writer.created_ids, credential)
            logger.error(f"Merge failed during {stage}: {e}")
            raise MergeError(
                f"Merge failed during {stage}: {e}",
                stage=stage.value,
                created_collection_ids=writer.created_ids,
                rolled_back_collection_ids=rolled_back,
                cause=e,
            ) from e

        stats.total_written = sum(len(collection.track_ids) for collection in collections)
        stats.collections_created = len(collections)
        self._transition(MergeState.COMPLETE)
        logger.info(
            f"Merge complete: {stats.total_written} tracks in {stats.collections_created} playlist(s)"
        )
        return MergeResult(collections=collections, stats=stats)

    async def _fetch_sources(
        self,
        source_ids: List[int],
        credential: Credential,
        stats: MergeStats,
        cancel: Optional[CancelToken],
    ) -> List[Track]:
        accepted: List[Track] = []
        for index, playlist_id in enumerate(source_ids):
            if index > 0:
                await sleep(self.inter_call_delay, cancel)

            tracks = await self.client.get_playlist_tracks(playlist_id, credential, cancel=cancel)
            kept = [track for track in tracks if self.track_filter(track)]
            stats.sources.append(
                SourceStats(id=playlist_id, fetched=len(tracks), accepted=len(kept))
            )
            logger.debug(f"Source {playlist_id}: {len(kept)}/{len(tracks)} tracks accepted")
            accepted.extend(kept)
        return accepted

    async def _rollback(self, created_ids: List[int], credential: Credential) -> List[int]:
        """Delete targets created by a failed run; failures are logged only."""
        if not self.rollback_on_failure or not created_ids:
            if created_ids:
                logger.warning(f"Merge left {len(created_ids)} playlist(s) behind: {created_ids}")
            return []

        rolled_back = await delete_playlists(self.client, credential, created_ids)
        logger.warning(f"Rolled back {len(rolled_back)}/{len(created_ids)} created playlist(s)")
        return rolled_back
