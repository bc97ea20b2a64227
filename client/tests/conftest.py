"""
Pytest fixtures for stockroom client tests.

Provides an in-process fake of the remote store (served through
httpx.MockTransport), an injectable clock, and ready-made clients logged in
as each role.
"""

import asyncio
import copy
import json

import httpx
import pytest

from stockroom import create_client


API_URL = "https://script.example.test/macros/s/abc/exec"


# =============================================================================
# SNAPSHOT DATA
# =============================================================================

def make_raw_snapshot():
    """A loosely-typed getAll payload, shaped like the spreadsheet backend's."""
    return {
        "users": [
            {"email": "admin@stock.test", "name": "Ada", "role": "ADMIN", "active": True, "password": "admin-pass"},
            {"email": "manager@stock.test", "name": "Max", "role": "MANAGER", "active": "TRUE", "password": "manager-pass"},
            {"email": "operator@stock.test", "name": "Olu", "role": "OPERATOR", "active": "TRUE", "password": "operator-pass"},
            {"email": "visitor@stock.test", "name": "Vic", "role": "GUEST", "active": "TRUE", "password": "guest-pass"},
            {"email": "former@stock.test", "name": "Fay", "role": "ADMIN", "active": "FALSE", "password": "former-pass"},
        ],
        "products": [
            {
                "id": "B2", "neId": "NE-2", "name": "Paper A4", "unit": "ream",
                "qtyPerPackage": "10", "initialQty": "5", "unitValue": "2,5",
                "currentBalance": "5", "minStock": "2", "createdAt": "2024-02-01T09:00:00.000Z",
            },
            {
                "id": "B1", "neId": "NE-1", "name": "Paper A4", "unit": "ream",
                "qtyPerPackage": 10, "initialQty": 20, "unitValue": 2.0,
                "currentBalance": 10, "minStock": 2, "createdAt": "2024-01-01T09:00:00.000Z",
            },
            {
                "id": "B3", "neId": "NE-1", "name": "Toner", "unit": "unit",
                "qtyPerPackage": 1, "initialQty": 4, "unitValue": "150.00",
                "currentBalance": "0", "minStock": 1, "createdAt": "2024-01-01T09:00:00.000Z",
            },
        ],
        "movements": [
            {
                "id": "MOV-1", "date": "2024-03-01T10:00:00.000Z", "type": "EXIT", "neId": "NE-1",
                "productId": "B1", "productName": "Paper A4", "quantity": "3", "value": "6",
                "userEmail": "operator@stock.test", "observation": "Room 101", "isReversed": "FALSE",
            },
            {
                "id": "MOV-2", "date": "2024-03-02T10:00:00.000Z", "type": "EXIT", "neId": "NE-1",
                "productId": "B1", "productName": "Paper A4", "quantity": 7, "value": 14,
                "userEmail": "operator@stock.test", "observation": "", "isReversed": "TRUE",
            },
            {
                "id": "REV-1", "date": "2024-03-03T10:00:00.000Z", "type": "REVERSAL", "neId": "NE-1",
                "productId": "B1", "productName": "Paper A4", "quantity": 7, "value": 14,
                "userEmail": "manager@stock.test", "observation": "Reversal of movement MOV-2", "isReversed": False,
            },
        ],
        "nes": [
            {"id": "NE-1", "supplier": "Acme", "date": "2024-01-01", "status": "OPEN", "totalValue": "640"},
            {"id": "NE-2", "supplier": "Paperco", "date": "2024-02-01", "status": "OPEN", "totalValue": "12,5"},
        ],
    }


# =============================================================================
# FAKE REMOTE STORE
# =============================================================================

class FakeBackend:
    """
    In-memory stand-in for the spreadsheet RPC endpoint.

    Applies mutations the way the real backend does (balances, reversed
    flags) so post-mutation refreshes show authoritative state.
    """

    def __init__(self, data=None):
        self.data = copy.deepcopy(data if data is not None else make_raw_snapshot())
        self.get_calls = 0
        self.posts = []
        self.fetch_delay = 0.0
        self.fail_fetch_with = None
        self.fail_post_with = None
        self.fetch_body = None
        self.post_response = None
        self.receipt_id = "RCPT-001"
        self.seen_idempotency_keys = set()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return await self._handle_get(request)
        return self._handle_post(request)

    async def _handle_get(self, request):
        self.get_calls += 1
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fail_fetch_with is not None:
            if isinstance(self.fail_fetch_with, Exception):
                raise self.fail_fetch_with
            return self.fail_fetch_with
        if self.fetch_body is not None:
            return httpx.Response(200, text=self.fetch_body)
        return httpx.Response(200, json=self.data)

    def _handle_post(self, request):
        body = json.loads(request.content.decode("utf-8"))
        self.posts.append({
            "params": dict(request.url.params),
            "headers": dict(request.headers),
            "body": body,
        })
        if self.fail_post_with is not None:
            if isinstance(self.fail_post_with, Exception):
                raise self.fail_post_with
            return self.fail_post_with
        if self.post_response is not None:
            return httpx.Response(200, json=self.post_response)

        key = body.get("idempotencyKey")
        if key in self.seen_idempotency_keys:
            return httpx.Response(200, json={"success": True, "duplicate": True})
        self.seen_idempotency_keys.add(key)

        getattr(self, f"_apply_{body['action']}")(body["payload"])
        return httpx.Response(200, json={"success": True, "receiptId": self.receipt_id})

    def _product(self, product_id):
        for product in self.data["products"]:
            if product["id"] == product_id:
                return product
        raise KeyError(product_id)

    def _apply_distribute(self, payload):
        for movement in payload["movements"]:
            product = self._product(movement["productId"])
            product["currentBalance"] = float(str(product["currentBalance"]).replace(",", ".")) - movement["quantity"]
            self.data["movements"].append(movement)

    def _apply_reverse(self, payload):
        original = None
        for movement in self.data["movements"]:
            if movement["id"] == payload["movementId"]:
                movement["isReversed"] = True
                original = movement
        reversal = payload["reversalMovement"]
        if original["type"] == "EXIT":
            product = self._product(reversal["productId"])
            product["currentBalance"] = float(str(product["currentBalance"]).replace(",", ".")) + reversal["quantity"]
        self.data["movements"].append(reversal)

    def _apply_createNE(self, payload):
        self.data["nes"].append(payload["ne"])
        self.data["products"].extend(payload["items"])
        self.data["movements"].extend(payload["movements"])

    def _apply_saveUser(self, payload):
        users = [u for u in self.data["users"] if u["email"] != payload["email"]]
        users.append(payload)
        self.data["users"] = users

    @property
    def last_post(self):
        return self.posts[-1]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# CONFIG
# =============================================================================

class _TestConfig:
    API_URL = API_URL
    LOCAL_DB_URL = "sqlite://"
    CACHE_TTL_SECONDS = 300.0
    FETCH_TIMEOUT_SECONDS = 0.2
    MUTATION_TIMEOUT_SECONDS = 1.0
    PING_TIMEOUT_SECONDS = 0.2
    LEGACY_PASSWORD_SALT = "TEST_SALT"
    MIN_PASSWORD_LENGTH = 8


def make_config(**overrides):
    return type("Config", (_TestConfig,), overrides)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def stockroom(config, backend, clock):
    client = create_client(config, transport=backend.transport(), clock=clock)
    yield client
    await client.aclose()


async def _logged_in(client, email):
    client.local_state.set_session_email(email)
    await client.refresh()
    return client


@pytest.fixture
async def as_admin(stockroom):
    return await _logged_in(stockroom, "admin@stock.test")


@pytest.fixture
async def as_manager(stockroom):
    return await _logged_in(stockroom, "manager@stock.test")


@pytest.fixture
async def as_operator(stockroom):
    return await _logged_in(stockroom, "operator@stock.test")
