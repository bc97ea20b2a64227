# Overview: Re-exports domain records and the local state table.

from .auth import User, UserRole, GUEST_USER, normalize_role
from .documents import Document, DocumentStatus
from .inventory import Batch, Movement, MovementType
from .local_state import Base, LocalStateEntry, SNAPSHOT_SCHEMA_VERSION
from .snapshot import Snapshot

__all__ = [
    "User",
    "UserRole",
    "GUEST_USER",
    "normalize_role",
    "Document",
    "DocumentStatus",
    "Batch",
    "Movement",
    "MovementType",
    "Base",
    "LocalStateEntry",
    "SNAPSHOT_SCHEMA_VERSION",
    "Snapshot",
]
