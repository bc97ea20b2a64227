# Overview: HTTP client for the remote store; the only code that talks to the network.

"""
Remote Store Client

The backend is a spreadsheet-backed RPC endpoint exposing two primitives:

    GET  ?action=getAll            -> {users[], products[], movements[], nes[]}
    POST ?action=<mutation>        body {action, payload, idempotencyKey}
                                   -> {success, error?, receiptId?}

FAILURE MAPPING:
- connect failure / timeout before the request left   -> TransientNetworkError
- non-2xx status                                      -> TransientNetworkError
- timeout or dropped connection after a POST was sent -> MutationOutcomeUnknownError
- HTML login page instead of JSON                     -> LoginPageError
- any other non-JSON body                             -> MalformedResponseError
- getAll collections that are not arrays              -> MalformedResponseError
- {success: false, error} or {error} on getAll        -> BackendError

POST bodies go out as text/plain JSON, the content type the backend reads.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

import httpx

from ..config import is_configured_url
from ..exceptions import (
    BackendError,
    LoginPageError,
    MalformedResponseError,
    MutationOutcomeUnknownError,
    NotConfiguredError,
    TransientNetworkError,
)
from ..time_utils import epoch_millis

log = logging.getLogger(__name__)


# Timeouts where the request may already have reached the server
_AMBIGUOUS_ERRORS = (
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class MutationAck:
    success: bool
    receipt_id: str | None = None
    raw: dict | None = None


@dataclass(frozen=True)
class PingResult:
    success: bool
    message: str
    latency_ms: int | None = None


def _looks_like_html(text: str) -> bool:
    head = text.lstrip().lower()
    return head.startswith("<!doctype html") or "<html" in head


def _decode_json(text: str) -> dict:
    try:
        data = json.loads(text)
    except ValueError:
        if _looks_like_html(text):
            raise LoginPageError("Remote store returned a login page instead of data")
        raise MalformedResponseError("Remote store returned invalid data")
    if not isinstance(data, dict):
        raise MalformedResponseError("Remote store returned an unexpected JSON shape")
    return data


SNAPSHOT_COLLECTIONS = ("users", "products", "movements", "nes")


def _check_snapshot_shape(data: dict) -> None:
    """Missing collections are tolerated; present ones must be arrays."""
    for key in SNAPSHOT_COLLECTIONS:
        value = data.get(key)
        if value is not None and not isinstance(value, list):
            raise MalformedResponseError(f"Snapshot field '{key}' is not a list")


class RemoteStore:
    """
    Thin async wrapper around httpx.AsyncClient.

    `transport` lets tests plug in httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        *,
        fetch_timeout: float = 6.0,
        mutation_timeout: float = 30.0,
        ping_timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or "").strip()
        self.fetch_timeout = fetch_timeout
        self.mutation_timeout = mutation_timeout
        self.ping_timeout = ping_timeout
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(mutation_timeout),
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return is_configured_url(self.base_url)

    def _require_url(self) -> str:
        if not self.is_configured:
            raise NotConfiguredError("Remote store URL is not configured")
        return self.base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def fetch_snapshot(self, timeout: float | None = None) -> dict:
        """Full snapshot, raw (loosely typed)."""
        url = self._require_url()
        try:
            response = await self._client.get(
                url,
                params={"action": "getAll", "t": str(epoch_millis())},
                timeout=timeout if timeout is not None else self.fetch_timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(f"Snapshot fetch timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientNetworkError(f"Snapshot fetch failed: {exc}") from exc

        if not response.is_success:
            raise TransientNetworkError(
                f"HTTP error: {response.status_code}", status_code=response.status_code
            )

        data = _decode_json(response.text)
        if data.get("error"):
            raise BackendError(str(data["error"]))
        _check_snapshot_shape(data)
        return data

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def post_mutation(self, action: str, payload: dict, idempotency_key: str) -> MutationAck:
        """
        Submit one mutation. No retries here: re-sending a distribute could
        double-allocate, so retrying is the caller's decision.
        """
        url = self._require_url()
        body = json.dumps(
            {"action": action, "payload": payload, "idempotencyKey": idempotency_key},
            ensure_ascii=False,
        )
        try:
            response = await self._client.post(
                url,
                params={"action": action},
                content=body.encode("utf-8"),
                headers={
                    "Content-Type": "text/plain;charset=utf-8",
                    "Idempotency-Key": idempotency_key,
                },
            )
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as exc:
            raise TransientNetworkError(f"Could not reach remote store: {exc}") from exc
        except _AMBIGUOUS_ERRORS as exc:
            raise MutationOutcomeUnknownError(
                f"No response to {action}; it may have been applied",
                idempotency_key=idempotency_key,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientNetworkError(f"Network error during {action}: {exc}") from exc

        if not response.is_success:
            raise TransientNetworkError(
                f"HTTP error: {response.status_code}", status_code=response.status_code
            )

        result = _decode_json(response.text)
        if not result.get("success"):
            raise BackendError(str(result.get("error") or f"{action} rejected by remote store"))

        receipt_id = result.get("receiptId")
        return MutationAck(
            success=True,
            receipt_id=str(receipt_id) if receipt_id else None,
            raw=result,
        )

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    async def ping(self) -> PingResult:
        """Connectivity check for settings screens. Never raises."""
        if not self.is_configured:
            return PingResult(False, "API URL is not configured.")

        start = time.monotonic()
        try:
            data = await self.fetch_snapshot(timeout=self.ping_timeout)
        except LoginPageError:
            return PingResult(False, "Permission error (HTML login page).")
        except MalformedResponseError:
            return PingResult(False, "Could not read JSON.")
        except TransientNetworkError as exc:
            return PingResult(False, f"Network error: {exc.message}")
        except BackendError as exc:
            return PingResult(False, f"Backend error: {exc.message}")

        latency_ms = int((time.monotonic() - start) * 1000)
        if "users" not in data:
            return PingResult(False, "Invalid JSON.", latency_ms)
        return PingResult(True, f"Connected! Ping: {latency_ms}ms.", latency_ms)
