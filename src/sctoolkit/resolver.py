"""Resolve many SoundCloud links through the shared resolve cache."""

import logging
from typing import Any, Optional, Sequence

from scclient.cancellation import CancelToken
from scclient.models import Credential
from scclient.resolve_cache import ResolveCache, normalize_url

from .bulk import BulkOperationRunner
from .exceptions import ValidationError
from .models import BulkOperationResult

logger = logging.getLogger(__name__)

MAX_BATCH_URLS = 50


async def resolve_batch(
    cache: ResolveCache,
    credential: Credential,
    urls: Sequence[str],
    pause: float = 0.0,
    cancel: Optional[CancelToken] = None,
) -> BulkOperationResult:
    """Resolve 1..50 links, one at a time.

    Every link is checked before the first upstream call. Entries carry the
    link as given in ``id`` and the resolved resource in ``data``.

    Raises:
        ValidationError: If the list size is out of range or a link is not a
            SoundCloud URL
    """
    if urls is None or isinstance(urls, (str, bytes)):
        raise ValidationError("urls must be a list")
    links = list(urls)
    if not 1 <= len(links) <= MAX_BATCH_URLS:
        raise ValidationError(f"Between 1 and {MAX_BATCH_URLS} URLs required (got {len(links)})")

    for link in links:
        if not isinstance(link, str):
            raise ValidationError(f"URL must be a string (got {link!r})")
        try:
            normalize_url(link)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    async def resolve(link: str) -> Any:
        return await cache.resolve(link, credential, cancel=cancel)

    logger.info(f"Resolving {len(links)} links")
    return await BulkOperationRunner(pause=pause, cancel=cancel).run(links, resolve)
