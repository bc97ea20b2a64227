# Overview: Client-side snapshot cache; the single owner of in-process entity state.

"""
Sync Cache Invariants (authoritative)

States:
- EMPTY: no snapshot ever adopted
- STALE: a snapshot is being served, older than the freshness window
  (or loaded from local storage and never confirmed by the network)
- FRESH: snapshot fetched within the freshness window

Rules:
- The snapshot is immutable and replaced whole; readers never see a
  half-updated state.
- At most one refresh is in flight; concurrent callers share it.
- A failed refresh never touches an existing snapshot. If there is none,
  an empty snapshot is adopted so reads never block forever.
- The fetch timeout cancels only the network request; nothing is rolled
  back because nothing is written until the response is fully parsed.
- Reads use stale-while-revalidate: an EMPTY cache awaits a refresh, a
  STALE one kicks a background refresh and answers immediately.
- Subscribers are notified synchronously after a snapshot is replaced.
  bootstrap() never notifies (nobody is listening yet).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from ..exceptions import (
    MalformedResponseError,
    NotConfiguredError,
    StockroomError,
    TransientNetworkError,
)
from ..models import Snapshot
from .concurrency import SingleFlight
from .local_state_service import LocalStateStore
from .remote_service import RemoteStore

log = logging.getLogger(__name__)


class CacheState:
    EMPTY = "EMPTY"
    STALE = "STALE"
    FRESH = "FRESH"


# Event reasons
REASON_REFRESHED = "REFRESHED"
REASON_EMPTY_FALLBACK = "EMPTY_FALLBACK"
REASON_SESSION_CHANGED = "SESSION_CHANGED"

# Undelivered events kept per updates() consumer
DEFAULT_CHANNEL_SIZE = 100


@dataclass(frozen=True)
class RefreshResult:
    ok: bool
    snapshot: Snapshot
    error: StockroomError | None = None


@dataclass(frozen=True)
class SnapshotEvent:
    snapshot: Snapshot
    reason: str


class _Subscription:
    __slots__ = ("callback",)

    def __init__(self, callback):
        self.callback = callback


class SyncCache:
    def __init__(
        self,
        remote: RemoteStore,
        local_state: LocalStateStore,
        *,
        ttl_seconds: float = 300.0,
        fetch_timeout: float = 6.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._remote = remote
        self._local_state = local_state
        self.ttl_seconds = ttl_seconds
        self.fetch_timeout = fetch_timeout
        self._clock = clock

        self._snapshot: Snapshot | None = None
        self._last_fetch_at: float | None = None
        self._flight = SingleFlight()
        self._subscriptions: list[_Subscription] = []
        self._background: set[asyncio.Task] = set()
        self._disposed = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> str:
        if self._snapshot is None:
            return CacheState.EMPTY
        if self._last_fetch_at is None:
            return CacheState.STALE
        if self._clock() - self._last_fetch_at > self.ttl_seconds:
            return CacheState.STALE
        return CacheState.FRESH

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot (empty if none adopted yet). Read-only view."""
        return self._snapshot if self._snapshot is not None else Snapshot.empty()

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    @property
    def refresh_in_flight(self) -> bool:
        return self._flight.in_flight

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bootstrap(self) -> bool:
        """
        Adopt the persisted snapshot without a network call.

        EMPTY -> STALE when a usable snapshot is stored. Returns True if one
        was adopted. Does not notify subscribers.
        """
        raw = self._local_state.load_snapshot()
        if raw is None:
            return False
        self._snapshot = Snapshot.from_raw(raw)
        log.debug(
            "Bootstrapped cached snapshot: %d batches, %d movements",
            len(self._snapshot.batches),
            len(self._snapshot.movements),
        )
        return True

    async def dispose(self) -> None:
        self._disposed = True
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        await self._flight.drain()
        self._subscriptions.clear()

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def refresh(self) -> RefreshResult:
        """Force a network fetch; single-flight. Never raises for network failures."""
        return await self._flight.run(self._refresh_once)

    async def _refresh_once(self) -> RefreshResult:
        try:
            raw = await asyncio.wait_for(self._remote.fetch_snapshot(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            error = TransientNetworkError(f"Snapshot fetch exceeded {self.fetch_timeout:g}s")
            return self._refresh_failed(error)
        except NotConfiguredError as exc:
            log.warning("Remote store URL is not configured; serving local data only")
            return self._refresh_failed(exc)
        except StockroomError as exc:
            return self._refresh_failed(exc)

        try:
            snapshot = Snapshot.from_raw(raw)
        except (TypeError, ValueError, OverflowError) as exc:
            return self._refresh_failed(MalformedResponseError(f"Unreadable snapshot: {exc}"))

        self._snapshot = snapshot
        self._last_fetch_at = self._clock()
        self._local_state.save_snapshot(raw)
        self._notify(SnapshotEvent(snapshot, REASON_REFRESHED))
        return RefreshResult(ok=True, snapshot=snapshot)

    def _refresh_failed(self, error: StockroomError) -> RefreshResult:
        if not isinstance(error, NotConfiguredError):
            log.error("Snapshot refresh failed (%s): %s", error.kind, error.message)
        if self._snapshot is None:
            # Never loaded anything: serve an empty snapshot instead of blocking
            self._snapshot = Snapshot.empty()
            self._notify(SnapshotEvent(self._snapshot, REASON_EMPTY_FALLBACK))
        return RefreshResult(ok=False, snapshot=self._snapshot, error=error)

    async def ensure_fresh(self) -> Snapshot:
        """
        Called by every read.

        EMPTY: await a refresh. STALE: refresh in the background, answer now.
        FRESH: answer now.
        """
        state = self.state
        if state == CacheState.EMPTY:
            await self.refresh()
        elif state == CacheState.STALE:
            self._refresh_in_background()
        return self.snapshot

    def _refresh_in_background(self) -> None:
        if self._disposed or self._flight.in_flight:
            return
        task = asyncio.ensure_future(self.refresh())
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning("Background refresh error: %s", exc)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, callback: Callable[[SnapshotEvent], None]) -> Callable[[], None]:
        """
        Register a listener; returns its unsubscribe function.

        Each call is an independent registration, even for the same callback;
        unsubscribe removes exactly that one and is safe to call twice.
        """
        subscription = _Subscription(callback)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            for i, existing in enumerate(self._subscriptions):
                if existing is subscription:
                    del self._subscriptions[i]
                    return

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def notify_session_changed(self) -> None:
        """Login/logout change what views should show without a new snapshot."""
        self._notify(SnapshotEvent(self.snapshot, REASON_SESSION_CHANGED))

    def _notify(self, event: SnapshotEvent) -> None:
        for subscription in list(self._subscriptions):
            try:
                subscription.callback(event)
            except Exception:
                log.exception("Snapshot subscriber failed")

    def updates(self, max_pending: int = DEFAULT_CHANNEL_SIZE) -> "SnapshotChannel":
        """
        Channel view of the subscription list.

            async with cache.updates() as channel:
                async for event in channel:
                    ...

        Registers immediately; unregisters on aclose().
        """
        return SnapshotChannel(self, max_pending)


class SnapshotChannel:
    """
    Async iterator over SnapshotEvents for one consumer.

    Holds at most `max_pending` undelivered events. When a slow consumer
    lets it fill up, the oldest event is dropped and counted in `dropped`;
    the newest snapshot is always kept.
    """

    def __init__(self, cache: SyncCache, max_pending: int = DEFAULT_CHANNEL_SIZE):
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self._queue: asyncio.Queue[SnapshotEvent] = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0
        self._closed = False
        self._unsubscribe = cache.subscribe(self._push)

    def _push(self, event: SnapshotEvent) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    def __aiter__(self) -> "SnapshotChannel":
        return self

    async def __anext__(self) -> SnapshotEvent:
        if self._closed:
            raise StopAsyncIteration
        return await self._queue.get()

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            self._unsubscribe()

    async def __aenter__(self) -> "SnapshotChannel":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
