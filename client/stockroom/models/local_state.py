from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase

from stockroom.time_utils import utcnow


# Bump whenever the persisted snapshot shape changes; older rows are ignored
SNAPSHOT_SCHEMA_VERSION = 1


class Base(DeclarativeBase):
    pass


class LocalStateEntry(Base):
    """
    Durable key/value row on the client machine.

    Keys in use:
    - snapshot: raw JSON of the last good `getAll` response
    - session_user: email of the logged-in user (absent = guest)
    - api_url: per-installation endpoint override

    WHY schema_version: a cached snapshot written by an older client must
    not be silently misread after a schema change.
    """
    __tablename__ = "local_state"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    schema_version = Column(Integer, nullable=False, default=SNAPSHOT_SCHEMA_VERSION)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<LocalStateEntry key={self.key!r} v{self.schema_version}>"
