"""Unit tests for request coalescing."""

import asyncio

import pytest

from sports_search.errors import RequestCancelledError
from sports_search.services.debounce import RequestCoalescer


def _returning(value, calls=None):
    async def func():
        if calls is not None:
            calls.append(value)
        return value

    return func


@pytest.mark.unit
@pytest.mark.asyncio
async def test_burst_executes_once_with_latest_function():
    coalescer = RequestCoalescer(delay=0.02, max_wait=0.5)
    calls = []

    results = await asyncio.gather(*(coalescer.execute("k", _returning(i, calls)) for i in range(5)))

    assert calls == [4]
    assert results == [4, 4, 4, 4, 4]
    assert coalescer.executions == 1
    assert coalescer.pending() == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_distinct_keys_execute_independently():
    coalescer = RequestCoalescer(delay=0.01)

    results = await asyncio.gather(coalescer.execute("a", _returning("a")), coalescer.execute("b", _returning("b")))

    assert results == ["a", "b"]
    assert coalescer.executions == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_max_wait_caps_the_quiet_period():
    coalescer = RequestCoalescer(delay=5.0, max_wait=0.05)

    result = await asyncio.wait_for(coalescer.execute("k", _returning("done")), timeout=1.0)

    assert result == "done"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_calls_join_in_flight_execution():
    coalescer = RequestCoalescer(delay=0, max_wait=0)
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "first"

    first = asyncio.create_task(coalescer.execute("k", slow))
    await asyncio.sleep(0.01)
    assert coalescer.in_flight("k") == 1

    second = asyncio.create_task(coalescer.execute("k", _returning("second")))
    await asyncio.sleep(0)
    release.set()

    assert await first == "first"
    assert await second == "first"
    assert coalescer.executions == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exceptions_reach_every_caller():
    coalescer = RequestCoalescer(delay=0.01)

    async def boom():
        raise RuntimeError("store down")

    results = await asyncio.gather(
        coalescer.execute("k", boom), coalescer.execute("k", boom), return_exceptions=True
    )

    assert all(isinstance(result, RuntimeError) for result in results)
    assert coalescer.executions == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_rejects_pending_callers():
    coalescer = RequestCoalescer(delay=5.0, max_wait=0)
    calls = []

    task = asyncio.create_task(coalescer.execute("k", _returning(1, calls)))
    await asyncio.sleep(0)

    assert coalescer.pending("k") == 1
    assert coalescer.cancel("k") == 1
    with pytest.raises(RequestCancelledError):
        await task
    assert calls == []
    assert coalescer.cancel("k") == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_flush_fires_immediately():
    coalescer = RequestCoalescer(delay=5.0, max_wait=0)

    task = asyncio.create_task(coalescer.execute("k", _returning("now")))
    await asyncio.sleep(0)

    assert coalescer.flush() == 1
    assert await asyncio.wait_for(task, timeout=1.0) == "now"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_close_cancels_pending_calls():
    coalescer = RequestCoalescer(delay=5.0, max_wait=0)

    task = asyncio.create_task(coalescer.execute("k", _returning(1)))
    await asyncio.sleep(0)
    await coalescer.close()

    with pytest.raises(RequestCancelledError):
        await task
    assert coalescer.pending() == 0


@pytest.mark.unit
def test_rejects_negative_delays():
    with pytest.raises(ValueError):
        RequestCoalescer(delay=-1)
