"""Collapse bursts of identical requests into one execution.

Each distinct key has at most one pending timer and at most one in-flight
execution. Calls arriving while a key is pending restart its quiet period
(never past ``max_wait`` from the first call) and replace the function that
will run. Calls arriving while a key is in flight join that execution.
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
import logging
from typing import Any

from sports_search.errors import RequestCancelledError


logger = logging.getLogger(__name__)


@dataclass
class _PendingCall:
    func: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    first_call_at: float
    handle: asyncio.TimerHandle | None = None
    callers: int = 1


class RequestCoalescer:
    """Debounce and de-duplicate async calls per key.

    Args:
        delay: Quiet period in seconds before a pending call fires
        max_wait: Ceiling in seconds from the first call; ``0`` disables it
    """

    def __init__(self, delay: float = 0.3, max_wait: float = 1.0):
        if delay < 0 or max_wait < 0:
            raise ValueError("delay and max_wait must be non-negative")
        self.delay = delay
        self.max_wait = max_wait
        self._pending: dict[str, _PendingCall] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        self._tasks: set[asyncio.Task] = set()
        self.executions = 0

    async def execute(self, key: str, func: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``func`` for ``key`` after the quiet period and return its result.

        Every caller of a coalesced burst receives the same result (or exception).

        Raises:
            RequestCancelledError: The pending call was cancelled before it ran
        """
        loop = asyncio.get_running_loop()

        in_flight = self._in_flight.get(key)
        if in_flight is not None and not in_flight.done():
            logger.debug("Joining in-flight request for %s", key)
            return await asyncio.shield(in_flight)

        pending = self._pending.get(key)
        now = loop.time()
        if pending is None:
            pending = _PendingCall(func=func, future=loop.create_future(), first_call_at=now)
            self._pending[key] = pending
        else:
            pending.func = func
            pending.callers += 1
            if pending.handle is not None:
                pending.handle.cancel()

        fire_at = now + self.delay
        if self.max_wait:
            fire_at = min(fire_at, pending.first_call_at + self.max_wait)
        pending.handle = loop.call_at(fire_at, self._fire, key)

        return await asyncio.shield(pending.future)

    def _fire(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        if pending.handle is not None:
            pending.handle.cancel()
            pending.handle = None

        self._in_flight[key] = pending.future
        self.executions += 1
        logger.debug("Executing %s for %d coalesced callers", key, pending.callers)
        task = asyncio.get_running_loop().create_task(self._run(key, pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, key: str, pending: _PendingCall) -> None:
        try:
            result = await pending.func()
        except asyncio.CancelledError:
            if not pending.future.done():
                pending.future.set_exception(RequestCancelledError(f"Request {key} was cancelled"))
            raise
        except Exception as exc:
            if not pending.future.done():
                pending.future.set_exception(exc)
        else:
            if not pending.future.done():
                pending.future.set_result(result)
        finally:
            if self._in_flight.get(key) is pending.future:
                del self._in_flight[key]

    def cancel(self, key: str | None = None) -> int:
        """Discard pending calls (all when ``key`` is None); returns how many were dropped.

        In-flight executions are not affected.
        """
        keys = [key] if key is not None else list(self._pending)
        cancelled = 0
        for pending_key in keys:
            pending = self._pending.pop(pending_key, None)
            if pending is None:
                continue
            if pending.handle is not None:
                pending.handle.cancel()
            if not pending.future.done():
                pending.future.set_exception(RequestCancelledError(f"Request {pending_key} was cancelled"))
            cancelled += 1
        if cancelled:
            logger.debug("Cancelled %d pending request(s)", cancelled)
        return cancelled

    def flush(self, key: str | None = None) -> int:
        """Fire pending calls now (all when ``key`` is None); returns how many fired."""
        keys = [key] if key is not None else list(self._pending)
        fired = 0
        for pending_key in keys:
            if pending_key in self._pending:
                self._fire(pending_key)
                fired += 1
        return fired

    def pending(self, key: str | None = None) -> int:
        if key is not None:
            return int(key in self._pending)
        return len(self._pending)

    def in_flight(self, key: str | None = None) -> int:
        if key is not None:
            future = self._in_flight.get(key)
            return int(future is not None and not future.done())
        return sum(1 for future in self._in_flight.values() if not future.done())

    async def close(self) -> None:
        """Cancel pending calls and wait for in-flight executions to settle."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
