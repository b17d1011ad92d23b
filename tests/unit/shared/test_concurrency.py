import asyncio

import pytest

from shared.utils.concurrency import bounded_gather, run_blocking
from shared.utils.retry import retry_async


@pytest.mark.asyncio
async def test_bounded_gather_keeps_input_order():
    async def work(n):
        await asyncio.sleep(0.01 * (5 - n))
        return n * 10

    assert await bounded_gather(work, range(5), limit=3) == [0, 10, 20, 30, 40]


@pytest.mark.asyncio
async def test_bounded_gather_respects_limit():
    in_flight = 0
    peak = 0

    async def work(n):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return n

    await bounded_gather(work, range(10), limit=2)
    assert peak == 2


@pytest.mark.asyncio
async def test_bounded_gather_cancellation_reaches_every_call():
    started = asyncio.Event()
    cancelled = []

    async def work(n):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(n)
            raise

    task = asyncio.create_task(bounded_gather(work, range(3), limit=3))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert sorted(cancelled) == [0, 1, 2]


@pytest.mark.asyncio
async def test_run_blocking():
    assert await run_blocking(sum, [1, 2, 3]) == 6


@pytest.mark.asyncio
async def test_retry_async_succeeds_after_failures(monkeypatch):
    monkeypatch.setattr(asyncio, "sleep", _no_sleep)
    attempts = []
    retried = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("down")
        return "ok"

    result = await retry_async(
        flaky, retries=5, on_retry=lambda a, e, s: retried.append(a)
    )
    assert result == "ok"
    assert retried == [1, 2]


@pytest.mark.asyncio
async def test_retry_async_reraises_last_failure(monkeypatch):
    monkeypatch.setattr(asyncio, "sleep", _no_sleep)

    async def broken():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_async(broken, retries=3)


async def _no_sleep(_delay):
    return None
