"""Sequential bulk actions with per-item failure isolation."""

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

import httpx

from scclient.cancellation import CancelToken, sleep
from scclient.exceptions import OperationCancelledError, SoundCloudError
from scclient.models import Credential

from .models import BulkItemResult, BulkOperationResult, BulkStatus, coerce_ids

logger = logging.getLogger(__name__)

MAX_BULK_IDS = 2000

BulkAction = Callable[[Any], Awaitable[Any]]


class BulkOperationRunner:
    """Apply one action to many ids, one at a time.

    A failing item is recorded and the run continues with the next id. The
    result always holds exactly one entry per input id, in input order.

    Example:
        >>> runner = BulkOperationRunner(pause=0.25)
        >>> result = await runner.run([1, 2, 3], unlike)
        >>> result.failed_ids
        [2]
    """

    def __init__(self, pause: float = 0.0, cancel: Optional[CancelToken] = None):
        self.pause = pause
        self.cancel = cancel

    async def run(self, ids: Sequence[Any], action: BulkAction) -> BulkOperationResult:
        result = BulkOperationResult()
        items = list(ids)

        for index, item_id in enumerate(items):
            try:
                if index > 0:
                    await sleep(self.pause, self.cancel)
                elif self.cancel is not None:
                    self.cancel.raise_if_cancelled()
                data = await action(item_id)
            except OperationCancelledError as e:
                logger.warning(f"Bulk run cancelled at item {index + 1}/{len(items)}: {e.reason}")
                for remaining in items[index:]:
                    result.results.append(
                        BulkItemResult(id=remaining, status=BulkStatus.ERROR, error="cancelled")
                    )
                break
            except (SoundCloudError, httpx.HTTPError) as e:
                logger.warning(f"Bulk action failed for {item_id}: {e}")
                result.results.append(
                    BulkItemResult(id=item_id, status=BulkStatus.ERROR, error=str(e))
                )
                continue
            except Exception as e:
                logger.warning(f"Bulk action raised unexpectedly for {item_id}: {e!r}", exc_info=True)
                result.results.append(
                    BulkItemResult(id=item_id, status=BulkStatus.ERROR, error=str(e) or type(e).__name__)
                )
                continue

            result.results.append(BulkItemResult(id=item_id, status=BulkStatus.OK, data=data))

        logger.info(
            f"Bulk run finished: {len(result.succeeded_ids)} ok, {len(result.failed_ids)} failed"
        )
        return result


async def bulk_unlike(
    client: Any,
    credential: Credential,
    track_ids: Sequence[Any],
    pause: float = 0.25,
    cancel: Optional[CancelToken] = None,
) -> BulkOperationResult:
    """Unlike up to 2000 tracks, one request per track.

    Raises:
        ValidationError: If the list is empty, longer than 2000 or holds invalid ids
    """
    ids = coerce_ids(track_ids, label="track id", min_count=1, max_count=MAX_BULK_IDS)

    async def unlike(track_id: int) -> None:
        await client.unlike_track(track_id, credential, cancel=cancel)

    logger.info(f"Unliking {len(ids)} tracks")
    return await BulkOperationRunner(pause=pause, cancel=cancel).run(ids, unlike)


async def bulk_unfollow(
    client: Any,
    credential: Credential,
    user_ids: Sequence[Any],
    pause: float = 0.25,
    cancel: Optional[CancelToken] = None,
) -> BulkOperationResult:
    """Unfollow up to 2000 users, one request per user.

    Raises:
        ValidationError: If the list is empty, longer than 2000 or holds invalid ids
    """
    ids = coerce_ids(user_ids, label="user id", min_count=1, max_count=MAX_BULK_IDS)

    async def unfollow(user_id: int) -> None:
        await client.unfollow_user(user_id, credential, cancel=cancel)

    logger.info(f"Unfollowing {len(ids)} users")
    return await BulkOperationRunner(pause=pause, cancel=cancel).run(ids, unfollow)

