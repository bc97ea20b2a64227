# Overview: Current-session resolution, login and logout.

"""
Session Service

The "current session user" is derived, not owned: the local state keeps only
an email, and the user row comes from the cached snapshot.

RESOLUTION:
1. No stored email -> guest
2. Stored email matching an ACTIVE user in the snapshot -> that user
3. Anything else (unknown, deactivated, cache empty) -> guest
"""

from __future__ import annotations

import logging

from ..models import GUEST_USER, User
from .auth_service import verify_password
from .local_state_service import LocalStateStore
from .sync_service import SyncCache

log = logging.getLogger(__name__)


class SessionService:
    def __init__(self, cache: SyncCache, local_state: LocalStateStore, *, legacy_salt: str):
        self._cache = cache
        self._local_state = local_state
        self._legacy_salt = legacy_salt

    def _resolve(self, email: str | None) -> User:
        if not email:
            return GUEST_USER
        user = self._cache.snapshot.find_user(email)
        if user is None or not user.active:
            return GUEST_USER
        return user

    async def current_user(self) -> User:
        email = self._local_state.get_session_email()
        if not email:
            return GUEST_USER
        await self._cache.ensure_fresh()
        return self._resolve(email)

    async def login(self, email: str, password: str) -> User | None:
        """Returns the logged-in user, or None on bad credentials."""
        normalized_email = (email or "").strip().lower()
        if not normalized_email or not password or not password.strip():
            return None

        # Credentials may have changed server-side; failures fall back to cache
        await self._cache.refresh()

        user = self._cache.snapshot.find_user(normalized_email)
        if user is None or not user.active:
            log.info("Login rejected for %s: unknown or inactive user", normalized_email)
            return None

        if not verify_password(password, user.password, legacy_salt=self._legacy_salt):
            log.info("Login rejected for %s: bad credentials", normalized_email)
            return None

        self._local_state.set_session_email(user.email)
        self._cache.notify_session_changed()
        return user

    async def logout(self) -> None:
        self._local_state.clear_session()
        self._cache.notify_session_changed()
