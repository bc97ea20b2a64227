# Overview: Movement recorder; turns allocations and entries into ledger mutations.

"""
Movement Recorder

WHY: stock only moves through append-only movements. The recorder builds
those rows, submits each business operation as ONE remote mutation (so the
backend can apply it atomically) and lets the post-mutation refresh bring
back the authoritative balances.

OPERATIONS:
- distribute: one EXIT per draw, submitted together
- reverse: one REVERSAL plus an instruction to flag the original
- create_document: document header + one batch and one ENTRY per line

GUARDS (all raise before any network call):
- empty draw list / non-positive draw quantity
- reversing an unknown movement (NotFoundError: refresh and retry)
- reversing an already-reversed movement or a REVERSAL row
- document without number/lines, bad line values, duplicate number
"""

from __future__ import annotations

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models import MovementType, User
from ..permissions import MutationKind
from ..time_utils import epoch_millis, utcnow
from ..validation import normalize_text, require_non_negative, require_positive, require_text
from . import ledger_service
from .allocation_service import Draw
from .ledger_service import DocumentDraft, LineItem
from .mutation_service import MutationGateway, MutationResult


class MovementRecorder:
    def __init__(self, gateway: MutationGateway):
        self._gateway = gateway

    @property
    def _snapshot(self):
        return self._gateway.cache.snapshot

    # =========================================================================
    # DISTRIBUTE
    # =========================================================================

    async def distribute(
        self,
        draws,
        acting_user_email: str | None = None,
        note: str = "",
        *,
        idempotency_key: str | None = None,
    ) -> MutationResult:
        """
        Record EXIT movements for an allocation's draws.

        `draws` is an Allocation's draws (or any iterable of Draw).
        acting_user_email defaults to the session user.
        """
        draws = list(draws)

        def build(user: User) -> dict:
            if not draws:
                raise ValidationError("Nothing to distribute")
            for draw in draws:
                if not isinstance(draw, Draw):
                    raise ValidationError("Distribution lines must be allocation draws")
                require_positive(draw.qty, "quantity")

            occurred_at = utcnow()
            email = normalize_text(acting_user_email) or user.email
            snapshot = self._snapshot
            movements = []
            for draw in draws:
                batch = snapshot.find_batch(draw.batch_id)
                movements.append(
                    ledger_service.build_exit_movement(
                        draw,
                        product_name=batch.product_name if batch else ledger_service.UNKNOWN_PRODUCT,
                        user_email=email,
                        note=normalize_text(note),
                        occurred_at=occurred_at,
                    )
                )
            return {"movements": [m.to_dict() for m in movements]}

        return await self._gateway.submit(
            MutationKind.DISTRIBUTE, build, idempotency_key=idempotency_key
        )

    # =========================================================================
    # REVERSE
    # =========================================================================

    async def reverse(
        self,
        movement_id: str,
        acting_user_email: str | None = None,
        *,
        idempotency_key: str | None = None,
    ) -> MutationResult:
        def build(user: User) -> dict:
            original = self._snapshot.find_movement(movement_id)
            if original is None:
                raise NotFoundError(f"Movement {movement_id} not found in cache; refresh and retry")
            if original.is_reversed:
                raise ValidationError(f"Movement {movement_id} is already reversed")
            if original.type == MovementType.REVERSAL:
                raise ValidationError("A reversal cannot itself be reversed")

            reversal = ledger_service.build_reversal_movement(
                original,
                user_email=normalize_text(acting_user_email) or user.email,
                occurred_at=utcnow(),
            )
            return {"movementId": original.id, "reversalMovement": reversal.to_dict()}

        return await self._gateway.submit(
            MutationKind.REVERSE, build, idempotency_key=idempotency_key
        )

    # =========================================================================
    # CREATE DOCUMENT
    # =========================================================================

    async def create_document(
        self,
        draft: DocumentDraft,
        items: list[LineItem],
        *,
        idempotency_key: str | None = None,
    ) -> MutationResult:
        items = list(items)

        def build(user: User) -> dict:
            number = require_text(draft.number, "document number")
            if not items:
                raise ValidationError("A commitment note needs at least one line item")
            for item in items:
                require_text(item.name, "product name")
                require_positive(item.initial_qty, f"{item.name} quantity")
                require_non_negative(item.unit_value, f"{item.name} unit value")
            if self._snapshot.find_document(number) is not None:
                raise ConflictError(f"Commitment note {number} already exists")

            now = utcnow()
            clean_draft = DocumentDraft(
                number=number,
                supplier=normalize_text(draft.supplier),
                issue_date=normalize_text(draft.issue_date),
            )
            document, batches, movements = ledger_service.build_document_rows(
                clean_draft,
                items,
                user_email=user.email,
                occurred_at=now,
                millis=epoch_millis(now),
            )
            return {
                "ne": document.to_dict(),
                "items": [b.to_dict() for b in batches],
                "movements": [m.to_dict() for m in movements],
            }

        return await self._gateway.submit(
            MutationKind.CREATE_DOCUMENT, build, idempotency_key=idempotency_key
        )
