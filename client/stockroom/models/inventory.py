from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from stockroom.time_utils import to_utc_z
from stockroom.validation import (
    normalize_bool,
    normalize_number,
    normalize_text,
    normalize_timestamp,
)


class MovementType:
    """Ledger entry kinds."""
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    REVERSAL = "REVERSAL"

    ALL = (ENTRY, EXIT, REVERSAL)


@dataclass(frozen=True)
class Batch:
    """
    A quantity of one product received under one commitment document.

    FIFO KEY: created_at orders consumption across batches of the same
    product name (oldest first). A batch without a readable timestamp is
    treated as the oldest.

    INVARIANT (backend-maintained): 0 <= current_balance <= initial_qty.
    The client never edits balances; each refresh replaces the batch.

    Batches are never deleted; an exhausted batch keeps current_balance == 0.
    """
    id: str
    document_id: str
    product_name: str
    unit: str = ""
    qty_per_package: float = 0.0
    initial_qty: float = 0.0
    unit_value: float = 0.0
    current_balance: float = 0.0
    min_stock: float = 0.0
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "Batch":
        return cls(
            id=normalize_text(raw.get("id")),
            document_id=normalize_text(raw.get("neId")),
            product_name=normalize_text(raw.get("name")),
            unit=normalize_text(raw.get("unit")),
            qty_per_package=normalize_number(raw.get("qtyPerPackage")),
            initial_qty=normalize_number(raw.get("initialQty")),
            unit_value=normalize_number(raw.get("unitValue")),
            current_balance=normalize_number(raw.get("currentBalance")),
            min_stock=normalize_number(raw.get("minStock")),
            created_at=normalize_timestamp(raw.get("createdAt")),
        )

    @property
    def stock_value(self) -> float:
        return self.current_balance * self.unit_value

    @property
    def consumed_qty(self) -> float:
        return self.initial_qty - self.current_balance

    @property
    def is_low_stock(self) -> bool:
        return self.current_balance <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "neId": self.document_id,
            "name": self.product_name,
            "unit": self.unit,
            "qtyPerPackage": self.qty_per_package,
            "initialQty": self.initial_qty,
            "unitValue": self.unit_value,
            "currentBalance": self.current_balance,
            "minStock": self.min_stock,
            "createdAt": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class Movement:
    """
    Append-only ledger entry.

    - quantity is always positive; the sign comes from `type`
    - value = quantity * batch unit value at the time of the movement
    - is_reversed is set only on the movement being reversed, never on the
      REVERSAL row itself
    - rows are never edited or deleted, only flagged
    """
    id: str
    type: str
    batch_id: str
    product_name: str
    quantity: float
    value: float = 0.0
    document_id: str = ""
    user_email: str = ""
    note: str = ""
    is_reversed: bool = False
    occurred_at: datetime | None = field(default=None)

    @classmethod
    def from_dict(cls, raw: dict) -> "Movement":
        return cls(
            id=normalize_text(raw.get("id")),
            type=normalize_text(raw.get("type")).upper(),
            batch_id=normalize_text(raw.get("productId")),
            product_name=normalize_text(raw.get("productName")),
            quantity=normalize_number(raw.get("quantity")),
            value=normalize_number(raw.get("value")),
            document_id=normalize_text(raw.get("neId")),
            user_email=normalize_text(raw.get("userEmail")),
            note=normalize_text(raw.get("observation")),
            is_reversed=normalize_bool(raw.get("isReversed")),
            occurred_at=normalize_timestamp(raw.get("date")),
        )

    @property
    def signed_quantity(self) -> float:
        """Effect on the batch balance (EXIT negative, ENTRY/REVERSAL positive)."""
        if self.type == MovementType.EXIT:
            return -self.quantity
        return self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.occurred_at),
            "type": self.type,
            "neId": self.document_id,
            "productId": self.batch_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "value": self.value,
            "userEmail": self.user_email,
            "observation": self.note,
            "isReversed": self.is_reversed,
        }
