# Overview: Service-layer operations for local durable state; encapsulates SQLite work.

"""
Local State Service

WHY: the client must boot with the last good snapshot when the network is
down, and must remember who is logged in between runs.

DESIGN:
- One row per key in `local_state` (see models.local_state)
- The snapshot is stored raw (exactly what `getAll` returned) and
  normalized on load, so normalization fixes apply to old caches too
- A snapshot row with a different schema_version is ignored, not migrated
- Storage failures are logged and swallowed on WRITE only; the caller's
  in-memory state is already correct and must not be rolled back
"""

from __future__ import annotations

import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import is_configured_url
from ..extensions import make_engine, make_session_factory
from ..models import Base, LocalStateEntry, SNAPSHOT_SCHEMA_VERSION

log = logging.getLogger(__name__)


SNAPSHOT_KEY = "snapshot"
SESSION_USER_KEY = "session_user"
API_URL_KEY = "api_url"


class LocalStateStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, url: str) -> "LocalStateStore":
        engine = make_engine(url)
        Base.metadata.create_all(engine)
        return cls(make_session_factory(engine))

    def dispose(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()

    # =========================================================================
    # RAW KEY ACCESS
    # =========================================================================

    def _get(self, key: str) -> LocalStateEntry | None:
        with self._session_factory() as session:
            return session.get(LocalStateEntry, key)

    def _put(self, key: str, value: str, schema_version: int = SNAPSHOT_SCHEMA_VERSION) -> bool:
        try:
            with self._session_factory() as session:
                entry = session.get(LocalStateEntry, key)
                if entry is None:
                    entry = LocalStateEntry(key=key, value=value, schema_version=schema_version)
                    session.add(entry)
                else:
                    entry.value = value
                    entry.schema_version = schema_version
                session.commit()
            return True
        except SQLAlchemyError:
            log.exception("Failed to persist local state key %s", key)
            return False

    def _delete(self, key: str) -> None:
        try:
            with self._session_factory() as session:
                entry = session.get(LocalStateEntry, key)
                if entry is not None:
                    session.delete(entry)
                    session.commit()
        except SQLAlchemyError:
            log.exception("Failed to delete local state key %s", key)

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def load_snapshot(self) -> dict | None:
        """
        Return the last persisted raw snapshot, or None.

        None when: nothing stored, stored under another schema version, or
        the stored text is not a JSON object.
        """
        try:
            entry = self._get(SNAPSHOT_KEY)
        except SQLAlchemyError:
            log.exception("Failed to read cached snapshot")
            return None
        if entry is None:
            return None

        if entry.schema_version != SNAPSHOT_SCHEMA_VERSION:
            log.warning(
                "Ignoring cached snapshot with schema v%s (expected v%s)",
                entry.schema_version,
                SNAPSHOT_SCHEMA_VERSION,
            )
            return None

        try:
            data = json.loads(entry.value)
        except ValueError:
            log.warning("Ignoring cached snapshot: stored value is not valid JSON")
            return None
        if not isinstance(data, dict):
            log.warning("Ignoring cached snapshot: stored value is not an object")
            return None
        return data

    def save_snapshot(self, raw: dict) -> bool:
        return self._put(SNAPSHOT_KEY, json.dumps(raw, ensure_ascii=False, separators=(",", ":")))

    # =========================================================================
    # SESSION
    # =========================================================================

    def get_session_email(self) -> str | None:
        try:
            entry = self._get(SESSION_USER_KEY)
        except SQLAlchemyError:
            log.exception("Failed to read session user")
            return None
        if entry is None or not entry.value.strip():
            return None
        return entry.value.strip()

    def set_session_email(self, email: str) -> None:
        self._put(SESSION_USER_KEY, email)

    def clear_session(self) -> None:
        self._delete(SESSION_USER_KEY)

    # =========================================================================
    # ENDPOINT OVERRIDE
    # =========================================================================

    def get_api_url(self) -> str | None:
        try:
            entry = self._get(API_URL_KEY)
        except SQLAlchemyError:
            log.exception("Failed to read API URL override")
            return None
        if entry is None:
            return None
        url = entry.value.strip()
        return url if url.startswith("http") else None

    def set_api_url(self, url: str | None) -> None:
        if url and is_configured_url(url):
            self._put(API_URL_KEY, url.strip())
        else:
            self._delete(API_URL_KEY)
