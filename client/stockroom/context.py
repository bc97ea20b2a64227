# Overview: The explicit client context handed to UI code; owns every component.

"""
Lifecycle: create -> bootstrap -> [refresh]* -> dispose

    async with create_client() as stockroom:
        plan = await stockroom.calculate_distribution("Paper A4", 12)
        await stockroom.distribute(plan.draws, note="Room 101")

The context is the single writer of cached state: views read through it
and route every mutation back through it.
"""

from __future__ import annotations

from .models import Batch, Document, Movement, User
from .services import allocation_service, reporting_service
from .services.allocation_service import Allocation
from .services.ledger_service import DocumentDraft, LineItem
from .services.local_state_service import LocalStateStore
from .services.movement_service import MovementRecorder
from .services.mutation_service import MutationResult
from .services.permission_service import AccessGate
from .services.remote_service import PingResult, RemoteStore
from .services.session_service import SessionService
from .services.sync_service import DEFAULT_CHANNEL_SIZE, RefreshResult, SnapshotChannel, SyncCache
from .services.user_service import UserService


class Stockroom:
    def __init__(
        self,
        *,
        cache: SyncCache,
        remote: RemoteStore,
        local_state: LocalStateStore,
        session: SessionService,
        gate: AccessGate,
        recorder: MovementRecorder,
        users: UserService,
        default_api_url: str = "",
    ):
        self.cache = cache
        self.remote = remote
        self.local_state = local_state
        self.session = session
        self.gate = gate
        self.recorder = recorder
        self.users = users
        self.default_api_url = default_api_url
        self._closed = False

    async def __aenter__(self) -> "Stockroom":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.cache.dispose()
        await self.remote.aclose()
        self.local_state.dispose()

    # =========================================================================
    # CACHE
    # =========================================================================

    async def refresh(self) -> RefreshResult:
        return await self.cache.refresh()

    def subscribe(self, callback):
        return self.cache.subscribe(callback)

    def updates(self, max_pending: int = DEFAULT_CHANNEL_SIZE) -> SnapshotChannel:
        return self.cache.updates(max_pending)

    # =========================================================================
    # READS
    # =========================================================================

    async def get_products(self) -> list[Batch]:
        snapshot = await self.cache.ensure_fresh()
        return list(snapshot.batches)

    async def get_users(self) -> list[User]:
        snapshot = await self.cache.ensure_fresh()
        return list(snapshot.users)

    async def get_documents(self) -> list[Document]:
        snapshot = await self.cache.ensure_fresh()
        return list(snapshot.documents)

    async def get_movements(self) -> list[Movement]:
        snapshot = await self.cache.ensure_fresh()
        return reporting_service.movements_newest_first(snapshot)

    async def get_consolidated_stock(self) -> list[reporting_service.StockLine]:
        snapshot = await self.cache.ensure_fresh()
        return reporting_service.consolidated_stock(snapshot)

    async def get_dashboard_stats(self) -> reporting_service.DashboardStats:
        snapshot = await self.cache.ensure_fresh()
        return reporting_service.dashboard_stats(snapshot)

    async def calculate_distribution(self, product_name: str, requested_qty: float) -> Allocation:
        snapshot = await self.cache.ensure_fresh()
        return allocation_service.allocate(snapshot, product_name, requested_qty)

    # =========================================================================
    # SESSION
    # =========================================================================

    async def current_user(self) -> User:
        return await self.session.current_user()

    async def login(self, email: str, password: str) -> User | None:
        return await self.session.login(email, password)

    async def logout(self) -> None:
        await self.session.logout()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def distribute(self, draws, acting_user_email: str | None = None, note: str = "", **kwargs) -> MutationResult:
        return await self.recorder.distribute(draws, acting_user_email, note, **kwargs)

    async def reverse(self, movement_id: str, acting_user_email: str | None = None, **kwargs) -> MutationResult:
        return await self.recorder.reverse(movement_id, acting_user_email, **kwargs)

    async def create_document(self, draft: DocumentDraft, items: list[LineItem], **kwargs) -> MutationResult:
        return await self.recorder.create_document(draft, items, **kwargs)

    async def save_user(self, user: User, new_password: str | None = None) -> MutationResult:
        return await self.users.save_user(user, new_password)

    async def change_own_password(self, old_password: str, new_password: str) -> MutationResult:
        return await self.users.change_own_password(old_password, new_password)

    # =========================================================================
    # ENDPOINT
    # =========================================================================

    def get_api_url(self) -> str:
        return self.remote.base_url

    def set_api_url(self, url: str | None) -> None:
        """Persist an endpoint override (None/invalid clears it)."""
        self.local_state.set_api_url(url)
        self.remote.base_url = self.local_state.get_api_url() or self.default_api_url

    async def test_connection(self) -> PingResult:
        return await self.remote.ping()
