# Overview: Single-flight coordination for the snapshot refresh.

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable


class SingleFlight:
    """
    At most one operation in flight; concurrent callers share its result.

    WHY: the remote store has no push channel, so several views may ask for
    a refresh at once. One shared pending future means one network round
    trip, and every caller sees the same outcome.

    The pending handle is cleared when the operation completes (success or
    failure), so the next call starts a fresh operation.

    A caller that is cancelled while waiting does not cancel the shared
    operation (other callers may still be waiting on it).
    """

    def __init__(self):
        self._pending: asyncio.Future | None = None

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    async def run(self, func: Callable[[], Awaitable[Any]]) -> Any:
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._execute(func))
        return await asyncio.shield(self._pending)

    async def _execute(self, func):
        try:
            return await func()
        finally:
            self._pending = None

    async def drain(self) -> None:
        """Cancel the in-flight operation, if any, and wait for it to settle."""
        pending = self._pending
        if pending is None:
            return
        pending.cancel()
        try:
            await pending
        except asyncio.CancelledError:
            pass
