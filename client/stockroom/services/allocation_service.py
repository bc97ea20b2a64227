# Overview: FIFO allocation of a requested quantity across batches of one product.

"""
Allocation Invariants (authoritative)

- Pure: no mutation, no I/O, no suspension. Safe to call on every keystroke.
- Eligible batches: same product name (exact match) and current_balance > 0.
- Order: ascending created_at (oldest document first). Batches with no
  readable timestamp count as oldest. Equal timestamps keep snapshot order
  (stable sort, no secondary key).
- Each draw takes min(batch balance, remaining); stop once remaining hits 0.
- shortfall = what is left after all eligible batches. 0 means fully
  satisfiable. For requested_qty <= 0 there are no draws and shortfall is
  the (non-positive) input; callers should reject such requests first.
- sum(draw.qty) == requested_qty - shortfall; no draw exceeds its batch
  balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import Batch, Snapshot


@dataclass(frozen=True)
class Draw:
    batch_id: str
    document_id: str
    qty: float
    unit_value: float

    @property
    def value(self) -> float:
        return self.qty * self.unit_value

    def to_dict(self) -> dict:
        return {
            "productId": self.batch_id,
            "neId": self.document_id,
            "qty": self.qty,
            "unitValue": self.unit_value,
        }


@dataclass(frozen=True)
class Allocation:
    product_name: str
    requested_qty: float
    draws: tuple[Draw, ...]
    shortfall: float

    @property
    def allocated_qty(self) -> float:
        return sum(d.qty for d in self.draws)

    @property
    def total_value(self) -> float:
        return sum(d.value for d in self.draws)

    @property
    def is_fully_satisfied(self) -> bool:
        return self.shortfall <= 0 and self.requested_qty > 0


def _fifo_key(batch: Batch) -> datetime:
    return batch.created_at if batch.created_at is not None else datetime.min


def eligible_batches(snapshot: Snapshot, product_name: str) -> list[Batch]:
    """Batches of product_name with stock, oldest first (stable)."""
    available = [b for b in snapshot.batches if b.product_name == product_name and b.current_balance > 0]
    return sorted(available, key=_fifo_key)


def available_qty(snapshot: Snapshot, product_name: str) -> float:
    return sum(b.current_balance for b in eligible_batches(snapshot, product_name))


def allocate(snapshot: Snapshot, product_name: str, requested_qty: float) -> Allocation:
    remaining = requested_qty
    draws: list[Draw] = []

    for batch in eligible_batches(snapshot, product_name):
        if remaining <= 0:
            break
        take = min(batch.current_balance, remaining)
        draws.append(
            Draw(
                batch_id=batch.id,
                document_id=batch.document_id,
                qty=take,
                unit_value=batch.unit_value,
            )
        )
        remaining -= take

    return Allocation(
        product_name=product_name,
        requested_qty=requested_qty,
        draws=tuple(draws),
        shortfall=remaining,
    )
