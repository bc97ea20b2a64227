"""
Movement recorder tests.

Verifies:
- distribute posts one EXIT per draw and refreshes balances from the backend
- reverse posts a compensating REVERSAL and a reversed movement stays reversed
- create_document posts the note, its batches and ENTRY movements together
- Guards reject bad input before any network call
- Network outcomes map to transient / outcome-unknown / backend failures
- Idempotency keys travel with every attempt
"""

import httpx
import pytest

from stockroom.exceptions import (
    AccessDeniedError,
    BackendError,
    ConflictError,
    MutationOutcomeUnknownError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from stockroom.models import MovementType
from stockroom.services.allocation_service import Draw
from stockroom.services.ledger_service import DocumentDraft, LineItem


# =============================================================================
# DISTRIBUTE
# =============================================================================

class TestDistribute:
    async def test_posts_exit_per_draw_and_refreshes(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 12)

        result = await as_operator.distribute(plan.draws, note="Room 101")

        assert result.success
        assert result.refreshed
        assert result.receipt_id == "RCPT-001"

        post = backend.last_post
        assert post["params"]["action"] == "distribute"
        assert post["body"]["action"] == "distribute"
        movements = post["body"]["payload"]["movements"]
        assert [(m["productId"], m["quantity"], m["value"]) for m in movements] == [
            ("B1", 10, 20),
            ("B2", 2, 5),
        ]
        for movement in movements:
            assert movement["type"] == MovementType.EXIT
            assert movement["productName"] == "Paper A4"
            assert movement["userEmail"] == "operator@stock.test"
            assert movement["observation"] == "Room 101"
            assert movement["isReversed"] is False
            assert movement["id"].startswith("MOV-")
            assert movement["date"].endswith("Z")
        assert movements[0]["id"] != movements[1]["id"]

        # Read-your-writes: balances come back from the backend
        assert backend.get_calls == 2
        after = await as_operator.calculate_distribution("Paper A4", 3)
        assert [(d.batch_id, d.qty) for d in after.draws] == [("B2", 3)]

    async def test_acting_user_override(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        await as_operator.distribute(plan.draws, "someone.else@stock.test")
        assert backend.last_post["body"]["payload"]["movements"][0]["userEmail"] == "someone.else@stock.test"

    async def test_unknown_batch_is_labelled_unknown(self, as_operator, backend):
        backend.post_response = {"success": True}
        await as_operator.distribute([Draw("NOT-CACHED", "NE-9", 1, 1.0)])
        assert backend.last_post["body"]["payload"]["movements"][0]["productName"] == "Unknown"

    @pytest.mark.parametrize(
        "draws",
        [
            [],
            [Draw("B1", "NE-1", 0, 2.0)],
            [Draw("B1", "NE-1", -1, 2.0)],
            [{"productId": "B1", "qty": 1}],
        ],
    )
    async def test_rejects_bad_draws_without_network(self, as_operator, backend, draws):
        with pytest.raises(ValidationError):
            await as_operator.distribute(draws)
        assert backend.posts == []

    async def test_guest_is_denied_before_validation(self, stockroom, backend):
        with pytest.raises(AccessDeniedError) as exc_info:
            await stockroom.distribute([])
        assert exc_info.value.role == "GUEST"
        assert backend.posts == []


# =============================================================================
# REVERSE
# =============================================================================

class TestReverse:
    async def test_reversal_restores_and_flags_original(self, as_manager, backend):
        result = await as_manager.reverse("MOV-1")

        assert result.success
        payload = backend.last_post["body"]["payload"]
        assert backend.last_post["body"]["action"] == "reverse"
        assert payload["movementId"] == "MOV-1"
        reversal = payload["reversalMovement"]
        assert reversal["type"] == MovementType.REVERSAL
        assert reversal["id"].startswith("REV-")
        assert reversal["productId"] == "B1"
        assert reversal["neId"] == "NE-1"
        assert reversal["quantity"] == 3
        assert reversal["value"] == 6
        assert reversal["userEmail"] == "manager@stock.test"
        assert reversal["observation"] == "Reversal of movement MOV-1"
        assert reversal["isReversed"] is False

        snapshot = as_manager.cache.snapshot
        assert snapshot.find_movement("MOV-1").is_reversed
        assert snapshot.find_batch("B1").current_balance == 13
        assert not snapshot.find_movement(reversal["id"]).is_reversed

    async def test_second_reversal_is_rejected_without_network(self, as_manager, backend):
        await as_manager.reverse("MOV-1")

        with pytest.raises(ValidationError):
            await as_manager.reverse("MOV-1")
        assert len(backend.posts) == 1

    async def test_already_reversed_movement(self, as_manager, backend):
        with pytest.raises(ValidationError):
            await as_manager.reverse("MOV-2")
        assert backend.posts == []

    async def test_reversal_row_cannot_be_reversed(self, as_manager, backend):
        with pytest.raises(ValidationError):
            await as_manager.reverse("REV-1")
        assert backend.posts == []

    async def test_unknown_movement(self, as_manager, backend):
        with pytest.raises(NotFoundError):
            await as_manager.reverse("MOV-404")
        assert backend.posts == []

    async def test_operator_may_not_reverse(self, as_operator, backend):
        with pytest.raises(AccessDeniedError):
            await as_operator.reverse("MOV-1")
        assert backend.posts == []


# =============================================================================
# CREATE DOCUMENT
# =============================================================================

@pytest.fixture
def draft():
    return DocumentDraft(number="NE-3", supplier="Office Co", issue_date="2024-04-01")


@pytest.fixture
def items():
    return [
        LineItem(name="Stapler", unit="unit", initial_qty=4, unit_value=12.5, min_stock=1),
        LineItem(name="Paper A4", unit="ream", initial_qty=10, unit_value=3.0, qty_per_package=10),
    ]


class TestCreateDocument:
    async def test_posts_note_batches_and_entries_together(self, as_manager, backend, draft, items):
        result = await as_manager.create_document(draft, items)

        assert result.success
        assert len(backend.posts) == 1
        body = backend.last_post["body"]
        assert body["action"] == "createNE"

        ne = body["payload"]["ne"]
        assert ne["id"] == "NE-3"
        assert ne["supplier"] == "Office Co"
        assert ne["status"] == "OPEN"
        assert ne["totalValue"] == pytest.approx(4 * 12.5 + 10 * 3.0)

        batches = body["payload"]["items"]
        entries = body["payload"]["movements"]
        assert [b["name"] for b in batches] == ["Stapler", "Paper A4"]
        for batch, entry in zip(batches, entries):
            assert batch["id"].startswith("P-")
            assert batch["neId"] == "NE-3"
            assert batch["currentBalance"] == batch["initialQty"]
            assert entry["type"] == MovementType.ENTRY
            assert entry["id"].startswith("MOV-IN-")
            assert entry["productId"] == batch["id"]
            assert entry["quantity"] == batch["initialQty"]
            assert entry["userEmail"] == "manager@stock.test"
            assert entry["date"] == batch["createdAt"]
        assert len({b["id"] for b in batches}) == 2

        snapshot = as_manager.cache.snapshot
        assert snapshot.find_document("NE-3") is not None
        assert len(snapshot.batches_for("Stapler")) == 1

    async def test_new_batch_is_drawn_last(self, as_manager, draft, items):
        await as_manager.create_document(draft, items)
        plan = await as_manager.calculate_distribution("Paper A4", 20)
        assert [d.batch_id for d in plan.draws][:2] == ["B1", "B2"]
        assert plan.draws[-1].document_id == "NE-3"

    async def test_duplicate_number_conflicts(self, as_manager, backend, items):
        with pytest.raises(ConflictError):
            await as_manager.create_document(DocumentDraft("NE-1", "Acme", "2024-05-01"), items)
        assert backend.posts == []

    @pytest.mark.parametrize(
        "number,lines",
        [
            ("", [LineItem("Pens", "box", 1, 1.0)]),
            ("NE-4", []),
            ("NE-4", [LineItem("", "box", 1, 1.0)]),
            ("NE-4", [LineItem("Pens", "box", 0, 1.0)]),
            ("NE-4", [LineItem("Pens", "box", 2, -1.0)]),
            ("NE-4", [LineItem("Pens", "box", 2, "3,5")]),
            ("NE-4", [LineItem("Pens", "box", 2, None)]),
            ("NE-4", [LineItem("Pens", "box", 2, 10 ** 400)]),
        ],
    )
    async def test_invalid_drafts_rejected_without_network(self, as_manager, backend, number, lines):
        with pytest.raises(ValidationError):
            await as_manager.create_document(DocumentDraft(number, "Acme", "2024-05-01"), lines)
        assert backend.posts == []

    async def test_operator_may_not_register_notes(self, as_operator, backend, draft, items):
        with pytest.raises(AccessDeniedError):
            await as_operator.create_document(draft, items)
        assert backend.posts == []


# =============================================================================
# NETWORK OUTCOMES
# =============================================================================

class TestMutationOutcomes:
    async def test_every_attempt_carries_an_idempotency_key(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        result = await as_operator.distribute(plan.draws)

        post = backend.last_post
        assert post["headers"]["idempotency-key"] == result.idempotency_key
        assert post["body"]["idempotencyKey"] == result.idempotency_key
        assert post["headers"]["content-type"].startswith("text/plain")

    async def test_fresh_key_per_call(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        first = await as_operator.distribute(plan.draws)
        second = await as_operator.distribute(plan.draws)
        assert first.idempotency_key != second.idempotency_key

    async def test_retry_with_same_key_is_applied_once(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 2)

        await as_operator.distribute(plan.draws, idempotency_key="retry-1")
        await as_operator.distribute(plan.draws, idempotency_key="retry-1")

        assert len(backend.posts) == 2
        assert {p["body"]["idempotencyKey"] for p in backend.posts} == {"retry-1"}
        assert as_operator.cache.snapshot.find_batch("B1").current_balance == 8

    async def test_lost_response_is_outcome_unknown(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        backend.fail_post_with = httpx.ReadTimeout("read timed out")

        with pytest.raises(MutationOutcomeUnknownError) as exc_info:
            await as_operator.distribute(plan.draws, idempotency_key="attempt-7")

        assert exc_info.value.idempotency_key == "attempt-7"
        assert exc_info.value.kind == "OUTCOME_UNKNOWN"
        assert backend.get_calls == 1

    async def test_unreachable_backend_is_transient(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        backend.fail_post_with = httpx.ConnectError("connection refused")

        with pytest.raises(TransientNetworkError):
            await as_operator.distribute(plan.draws)

    async def test_server_error_status_is_transient(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        backend.fail_post_with = httpx.Response(503, text="unavailable")

        with pytest.raises(TransientNetworkError) as exc_info:
            await as_operator.distribute(plan.draws)
        assert exc_info.value.status_code == 503

    async def test_backend_rejection(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        backend.post_response = {"success": False, "error": "Insufficient balance"}

        with pytest.raises(BackendError, match="Insufficient balance"):
            await as_operator.distribute(plan.draws)
        assert backend.get_calls == 1

    async def test_failed_refresh_after_success_is_reported(self, as_operator, backend):
        plan = await as_operator.calculate_distribution("Paper A4", 1)
        backend.fail_fetch_with = httpx.ConnectError("gone")

        result = await as_operator.distribute(plan.draws)

        assert result.success
        assert not result.refreshed
