"""Cooperative cancellation for long-running upstream work.

A ``CancelToken`` is threaded through every suspension point: each HTTP request
and each artificial pause between calls. When the token fires, the next (or the
current) suspension point raises ``OperationCancelledError``.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Cancellation signal shared between a caller and a running operation.

    Example:
        >>> token = CancelToken()
        >>> token.cancel("user aborted")
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "cancelled"
        self._timer: Optional[asyncio.TimerHandle] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        """Create a token that cancels itself after ``seconds``.

        Must be called from inside a running event loop.
        """
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token.cancel, f"timed out after {seconds}s")
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Fire the signal. Repeated calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
        logger.info(f"Cancellation requested: {reason}")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason)

    async def sleep(self, seconds: float) -> None:
        """Pause for ``seconds`` unless the token fires first."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelledError(self._reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, abandoning it if the token fires first.

        Raises:
            OperationCancelledError: If the token fired before completion
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError(self._reason)
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise OperationCancelledError(self._reason)


async def sleep(seconds: float, cancel: Optional[CancelToken] = None) -> None:
    """Pause between upstream calls, honouring an optional cancel token."""
    if cancel is not None:
        await cancel.sleep(seconds)
    elif seconds > 0:
        await asyncio.sleep(seconds)


async def guarded(awaitable: Awaitable[T], cancel: Optional[CancelToken] = None) -> T:
    """Await ``awaitable`` under an optional cancel token."""
    if cancel is None:
        return await awaitable
    return await cancel.guard(awaitable)
