# Overview: Builders for append-only ledger rows (movements, batches, documents).

"""
Ledger Invariants (authoritative)

- Movements are append-only: built once here, never edited or deleted.
- A reversal is a compensating REVERSAL row carrying the original batch,
  quantity and value; the original is only flagged (by the backend) as
  is_reversed. The REVERSAL row itself is never flagged.
- value = quantity * batch unit value at the time of the movement.
- Balances are not computed here. The backend applies movements to
  batches and the next snapshot carries the authoritative balances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import Batch, Document, DocumentStatus, Movement, MovementType
from . import identifier_service
from .allocation_service import Draw


UNKNOWN_PRODUCT = "Unknown"
INITIAL_ENTRY_NOTE = "Initial entry for commitment note {number}"
REVERSAL_NOTE = "Reversal of movement {movement_id}"


@dataclass(frozen=True)
class LineItem:
    """One product line on a commitment note being registered."""
    name: str
    unit: str
    initial_qty: float
    unit_value: float
    qty_per_package: float = 1.0
    min_stock: float = 0.0

    @property
    def value(self) -> float:
        return self.initial_qty * self.unit_value


@dataclass(frozen=True)
class DocumentDraft:
    number: str
    supplier: str
    issue_date: str


def build_exit_movement(
    draw: Draw,
    *,
    product_name: str,
    user_email: str,
    note: str,
    occurred_at: datetime,
) -> Movement:
    return Movement(
        id=identifier_service.new_movement_id(),
        type=MovementType.EXIT,
        batch_id=draw.batch_id,
        product_name=product_name or UNKNOWN_PRODUCT,
        quantity=draw.qty,
        value=draw.qty * draw.unit_value,
        document_id=draw.document_id,
        user_email=user_email,
        note=note,
        is_reversed=False,
        occurred_at=occurred_at,
    )


def build_reversal_movement(original: Movement, *, user_email: str, occurred_at: datetime) -> Movement:
    return Movement(
        id=identifier_service.new_reversal_id(),
        type=MovementType.REVERSAL,
        batch_id=original.batch_id,
        product_name=original.product_name,
        quantity=original.quantity,
        value=original.value,
        document_id=original.document_id,
        user_email=user_email,
        note=REVERSAL_NOTE.format(movement_id=original.id),
        is_reversed=False,
        occurred_at=occurred_at,
    )


def build_document_rows(
    draft: DocumentDraft,
    items: list[LineItem],
    *,
    user_email: str,
    occurred_at: datetime,
    millis: int,
) -> tuple[Document, list[Batch], list[Movement]]:
    """
    One batch and one ENTRY movement per line item, all sharing one
    timestamp, plus the document header.
    """
    document = Document(
        id=draft.number,
        supplier=draft.supplier,
        issue_date=draft.issue_date,
        status=DocumentStatus.OPEN,
        total_value=sum(item.value for item in items),
    )

    batches: list[Batch] = []
    movements: list[Movement] = []
    for index, item in enumerate(items):
        batch = Batch(
            id=identifier_service.new_batch_id(millis, index),
            document_id=draft.number,
            product_name=item.name,
            unit=item.unit,
            qty_per_package=item.qty_per_package,
            initial_qty=item.initial_qty,
            unit_value=item.unit_value,
            current_balance=item.initial_qty,
            min_stock=item.min_stock,
            created_at=occurred_at,
        )
        batches.append(batch)
        movements.append(
            Movement(
                id=identifier_service.new_entry_movement_id(millis, index),
                type=MovementType.ENTRY,
                batch_id=batch.id,
                product_name=item.name,
                quantity=item.initial_qty,
                value=item.value,
                document_id=draft.number,
                user_email=user_email,
                note=INITIAL_ENTRY_NOTE.format(number=draft.number),
                is_reversed=False,
                occurred_at=occurred_at,
            )
        )

    return document, batches, movements
