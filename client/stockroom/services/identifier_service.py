# Overview: Identifier generation for client-created ledger rows.

"""
WHY: every movement, batch and mutation attempt needs an id the client can
mint offline. Random uuid4 material keeps collisions negligible even when
two clients create rows in the same millisecond.

FORMATS:
- movements:        MOV-<12 hex>   (EXIT), REV-<12 hex> (REVERSAL)
- entry movements:  MOV-IN-<millis>-<index>-<4 hex>
- batches:          P-<millis>-<index>-<4 hex>
- idempotency keys: uuid4 string
"""

import uuid


def _short_hex() -> str:
    return uuid.uuid4().hex[:12].upper()


def new_movement_id() -> str:
    return f"MOV-{_short_hex()}"


def new_reversal_id() -> str:
    return f"REV-{_short_hex()}"


def new_batch_id(millis: int, index: int) -> str:
    return f"P-{millis}-{index}-{uuid.uuid4().hex[:4].upper()}"


def new_entry_movement_id(millis: int, index: int) -> str:
    return f"MOV-IN-{millis}-{index}-{uuid.uuid4().hex[:4].upper()}"


def new_idempotency_key() -> str:
    return str(uuid.uuid4())
