# client/stockroom/__init__.py
from __future__ import annotations

import time

from .config import Config
from .context import Stockroom
from .services.local_state_service import LocalStateStore
from .services.movement_service import MovementRecorder
from .services.mutation_service import MutationGateway
from .services.permission_service import AccessGate
from .services.remote_service import RemoteStore
from .services.session_service import SessionService
from .services.sync_service import SyncCache
from .services.user_service import UserService


def create_client(config=None, *, transport=None, clock=None) -> Stockroom:
    """
    Build and bootstrap a client context.

    `config` is any object with the Config attributes (defaults to Config).
    `transport` and `clock` are injection points for tests.
    """
    config = config or Config

    local_state = LocalStateStore.from_url(config.LOCAL_DB_URL)

    # A saved override wins over the environment
    api_url = local_state.get_api_url() or config.API_URL

    remote = RemoteStore(
        api_url,
        fetch_timeout=config.FETCH_TIMEOUT_SECONDS,
        mutation_timeout=config.MUTATION_TIMEOUT_SECONDS,
        ping_timeout=config.PING_TIMEOUT_SECONDS,
        transport=transport,
    )
    cache = SyncCache(
        remote,
        local_state,
        ttl_seconds=config.CACHE_TTL_SECONDS,
        fetch_timeout=config.FETCH_TIMEOUT_SECONDS,
        clock=clock or time.monotonic,
    )
    cache.bootstrap()

    session = SessionService(cache, local_state, legacy_salt=config.LEGACY_PASSWORD_SALT)
    gate = AccessGate(session)
    gateway = MutationGateway(cache, remote, gate)

    return Stockroom(
        cache=cache,
        remote=remote,
        local_state=local_state,
        session=session,
        gate=gate,
        recorder=MovementRecorder(gateway),
        users=UserService(
            gateway,
            legacy_salt=config.LEGACY_PASSWORD_SALT,
            min_password_length=config.MIN_PASSWORD_LENGTH,
        ),
        default_api_url=config.API_URL,
    )


__all__ = ["Config", "Stockroom", "create_client"]
