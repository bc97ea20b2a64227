"""
Snapshot Invariants (authoritative)

- A Snapshot is immutable. A refresh builds a new one and swaps the
  reference; readers never observe a half-updated snapshot.
- Collections keep the order the remote store returned them in. FIFO
  tie-breaking relies on that order.
- Lookups by id return the first row carrying that id.
- from_raw never raises: a collection that is not a list reads as empty,
  and rows that are not objects are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .auth import User
from .documents import Document
from .inventory import Batch, Movement


def _rows(data: dict, key: str) -> list[dict]:
    collection = data.get(key)
    if not isinstance(collection, list):
        return []
    return [row for row in collection if isinstance(row, dict)]


def _first_by(items, key) -> dict:
    index: dict = {}
    for item in items:
        index.setdefault(key(item), item)
    return index


@dataclass(frozen=True)
class Snapshot:
    users: tuple[User, ...] = ()
    batches: tuple[Batch, ...] = ()
    movements: tuple[Movement, ...] = ()
    documents: tuple[Document, ...] = ()

    _batches_by_id: dict = field(default=None, init=False, repr=False, compare=False)
    _movements_by_id: dict = field(default=None, init=False, repr=False, compare=False)
    _users_by_email: dict = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_batches_by_id", _first_by(self.batches, lambda b: b.id))
        object.__setattr__(self, "_movements_by_id", _first_by(self.movements, lambda m: m.id))
        object.__setattr__(self, "_users_by_email", _first_by(self.users, lambda u: u.email.lower()))

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @classmethod
    def from_raw(cls, data: dict | None) -> "Snapshot":
        """Normalize the loosely-typed `getAll` payload."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            users=tuple(User.from_dict(u) for u in _rows(data, "users")),
            batches=tuple(Batch.from_dict(p) for p in _rows(data, "products")),
            movements=tuple(Movement.from_dict(m) for m in _rows(data, "movements")),
            documents=tuple(Document.from_dict(n) for n in _rows(data, "nes")),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.users or self.batches or self.movements or self.documents)

    def find_batch(self, batch_id: str) -> Batch | None:
        return self._batches_by_id.get(batch_id)

    def find_movement(self, movement_id: str) -> Movement | None:
        return self._movements_by_id.get(movement_id)

    def find_user(self, email: str) -> User | None:
        return self._users_by_email.get((email or "").strip().lower())

    def find_document(self, document_id: str) -> Document | None:
        for doc in self.documents:
            if doc.id == document_id:
                return doc
        return None

    def batches_for(self, product_name: str) -> list[Batch]:
        return [b for b in self.batches if b.product_name == product_name]
