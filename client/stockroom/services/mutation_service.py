# Overview: Shared write path: gate -> validate/build -> POST -> refresh.

"""
Mutation Path

Every write follows the same steps, in order:
1. AccessGate.authorize(kind)  -> AccessDeniedError, no network
2. build(user)                 -> ValidationError/NotFoundError, no network
3. RemoteStore.post_mutation   -> network/backend failures surface as-is
4. SyncCache.refresh()         -> authoritative balances become visible

WHY refresh instead of local arithmetic: the backend may apply rules the
client does not replicate, so the client never decrements balances itself.
After a successful call returns, a read on the same client observes the
post-mutation state (read-your-writes), unless that refresh failed, which
is reported as `refreshed=False`.

NO RETRIES: re-submitting could apply a mutation twice if the first one
landed but its response was lost. Each attempt carries an idempotency key;
a caller retrying after MutationOutcomeUnknownError passes the same key
back so the backend can recognise the duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..models import User
from ..permissions import wire_action_for
from . import identifier_service
from .permission_service import AccessGate
from .remote_service import RemoteStore
from .sync_service import SyncCache

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationResult:
    success: bool
    idempotency_key: str
    receipt_id: str | None = None
    refreshed: bool = False


PayloadBuilder = Callable[[User], dict]


class MutationGateway:
    def __init__(self, cache: SyncCache, remote: RemoteStore, gate: AccessGate):
        self._cache = cache
        self._remote = remote
        self._gate = gate

    @property
    def cache(self) -> SyncCache:
        return self._cache

    async def submit(
        self,
        kind: str,
        build: PayloadBuilder,
        *,
        idempotency_key: str | None = None,
    ) -> MutationResult:
        user = await self._gate.authorize(kind)

        payload = build(user)

        key = idempotency_key or identifier_service.new_idempotency_key()
        action = wire_action_for(kind)

        ack = await self._remote.post_mutation(action, payload, key)
        log.info("%s acknowledged (key=%s, receipt=%s)", action, key, ack.receipt_id)

        refresh = await self._cache.refresh()
        if not refresh.ok:
            log.warning("%s applied but post-mutation refresh failed; balances may lag", action)

        return MutationResult(
            success=True,
            idempotency_key=key,
            receipt_id=ack.receipt_id,
            refreshed=refresh.ok,
        )
