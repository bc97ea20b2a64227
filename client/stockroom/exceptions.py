# Overview: Failure taxonomy shared by every stockroom component.

"""
Every failure the core surfaces carries a stable `kind` so the UI can tell
"nothing happened, try again" (TRANSIENT_NETWORK, VALIDATION, ACCESS_DENIED)
apart from "something may have happened, refresh before retrying"
(OUTCOME_UNKNOWN).
"""

from __future__ import annotations


class StockroomError(Exception):
    """Base class for structured stockroom failures."""
    kind = "ERROR"

    def __init__(self, message: str, payload: dict | None = None):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_dict(self) -> dict:
        rv = dict(self.payload or ())
        rv["kind"] = self.kind
        rv["message"] = self.message
        rv["success"] = False
        return rv


class TransientNetworkError(StockroomError):
    """Timeout, connection failure or non-2xx status. Local state is untouched."""
    kind = "TRANSIENT_NETWORK"

    def __init__(self, message: str, status_code: int | None = None, payload: dict | None = None):
        super().__init__(message, payload=payload)
        self.status_code = status_code


class MutationOutcomeUnknownError(StockroomError):
    """
    A mutation request was sent but no answer arrived.

    The backend may or may not have applied it. Refresh, then retry with the
    same idempotency key.
    """
    kind = "OUTCOME_UNKNOWN"

    def __init__(self, message: str, idempotency_key: str | None = None):
        super().__init__(message, payload={"idempotency_key": idempotency_key})
        self.idempotency_key = idempotency_key


class MalformedResponseError(StockroomError):
    """The server answered with something that is not the expected JSON."""
    kind = "MALFORMED_RESPONSE"


class LoginPageError(MalformedResponseError):
    """The server answered with an HTML login page (expired backend session)."""
    kind = "LOGIN_REQUIRED"


class BackendError(StockroomError):
    """The backend reported `{success: false, error}`."""
    kind = "BACKEND"


class NotConfiguredError(StockroomError):
    """No usable remote store URL."""
    kind = "NOT_CONFIGURED"


class ValidationError(StockroomError, ValueError):
    """Input rejected before any network call."""
    kind = "VALIDATION"


class ConflictError(ValidationError):
    """Business rule conflict (e.g., duplicate document number)."""
    kind = "CONFLICT"


class NotFoundError(StockroomError, LookupError):
    """Referenced record is not in the cached snapshot (cache may be stale)."""
    kind = "NOT_FOUND"


class AccessDeniedError(StockroomError):
    """Role lacks permission for the mutation kind."""
    kind = "ACCESS_DENIED"

    def __init__(self, message: str, role: str | None = None, mutation: str | None = None):
        super().__init__(message, payload={"role": role, "mutation": mutation})
        self.role = role
        self.mutation = mutation
