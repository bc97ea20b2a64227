from __future__ import annotations

from dataclasses import dataclass

from stockroom.validation import normalize_number, normalize_text


class DocumentStatus:
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class Document:
    """
    Commitment note under which batches are received.

    The id is the business-assigned note number typed by the operator, not a
    generated key. Created atomically with its batches and ENTRY movements.
    """
    id: str
    supplier: str
    issue_date: str
    status: str = DocumentStatus.OPEN
    total_value: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "Document":
        return cls(
            id=normalize_text(raw.get("id")),
            supplier=normalize_text(raw.get("supplier")),
            issue_date=normalize_text(raw.get("date")),
            status=normalize_text(raw.get("status")).upper() or DocumentStatus.OPEN,
            total_value=normalize_number(raw.get("totalValue")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier": self.supplier,
            "date": self.issue_date,
            "status": self.status,
            "totalValue": self.total_value,
        }
