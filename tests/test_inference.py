"""Tests for cooperative cancellation helpers."""

import asyncio

import pytest

from lesion_screener.errors import AnalysisCancelled
from lesion_screener.services.inference import CancelToken, run_cancellable


def test_cancel_token_flags_cancellation() -> None:
    async def scenario() -> None:
        token = CancelToken()
        assert not token.cancelled

        token.cancel()

        assert token.cancelled
        await asyncio.wait_for(token.wait(), timeout=1)

    asyncio.run(scenario())


def test_run_cancellable_returns_result() -> None:
    async def request() -> str:
        await asyncio.sleep(0)
        return "scores"

    async def scenario() -> str:
        return await run_cancellable(request(), CancelToken())

    assert asyncio.run(scenario()) == "scores"


def test_run_cancellable_propagates_request_errors() -> None:
    async def request() -> str:
        raise RuntimeError("server exploded")

    async def scenario() -> None:
        await run_cancellable(request(), CancelToken())

    with pytest.raises(RuntimeError, match="exploded"):
        asyncio.run(scenario())


def test_run_cancellable_abandons_request_when_token_fires() -> None:
    started = []
    finished = []

    async def request() -> str:
        started.append(True)
        await asyncio.sleep(10)
        finished.append(True)
        return "late"

    async def scenario() -> None:
        token = CancelToken()
        pending = asyncio.create_task(run_cancellable(request(), token))
        while not started:
            await asyncio.sleep(0)
        token.cancel()
        with pytest.raises(AnalysisCancelled):
            await pending

    asyncio.run(scenario())

    assert finished == []


def test_run_cancellable_skips_already_cancelled_token() -> None:
    started = []

    async def request() -> str:
        started.append(True)
        return "never"

    async def scenario() -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(AnalysisCancelled):
            await run_cancellable(request(), token)

    asyncio.run(scenario())

    assert started == []
