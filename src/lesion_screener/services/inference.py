"""Inference backend interface and cooperative cancellation."""

import asyncio
from collections.abc import Awaitable
from typing import Protocol, TypeVar

from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import InferenceResult
from lesion_screener.errors import AnalysisCancelled

T = TypeVar("T")


class CancelToken:
    """Signal telling a backend that its result is no longer wanted."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Mark the request as abandoned."""
        self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()


class InferenceBackend(Protocol):
    """Interface for the opaque lesion classifier."""

    async def analyze(
        self, image: ImageHandle, cancel_token: CancelToken
    ) -> InferenceResult:
        """Return raw per-class scores and an optional auxiliary visual."""


async def run_cancellable(awaitable: Awaitable[T], cancel_token: CancelToken) -> T:
    """Await a backend request unless the token fires first."""
    if cancel_token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AnalysisCancelled("Request cancelled before it started")
    request = asyncio.ensure_future(awaitable)
    watcher = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({request, watcher}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        request.cancel()
        raise
    finally:
        watcher.cancel()
    if not request.done():
        request.cancel()
        raise AnalysisCancelled("Request cancelled while in flight")
    return request.result()
