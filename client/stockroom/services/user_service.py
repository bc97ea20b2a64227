# Overview: User account mutations (admin edits and self-service password change).

from __future__ import annotations

from ..exceptions import NotFoundError, ValidationError
from ..models import User, normalize_role
from ..permissions import MutationKind
from ..validation import require_text
from .auth_service import hash_password, verify_password
from .mutation_service import MutationGateway, MutationResult


class UserService:
    def __init__(self, gateway: MutationGateway, *, legacy_salt: str, min_password_length: int = 8):
        self._gateway = gateway
        self._legacy_salt = legacy_salt
        self._min_password_length = min_password_length

    async def save_user(self, user: User, new_password: str | None = None) -> MutationResult:
        """
        Create or update a user row (ADMIN only).

        A plain new_password is hashed with bcrypt before it leaves the
        client; otherwise the stored credential is sent back unchanged.
        """
        def build(_actor: User) -> dict:
            email = require_text(user.email, "email").lower()
            row = User(
                email=email,
                name=user.name,
                role=normalize_role(user.role),
                active=user.active,
                password=user.password,
            )
            if new_password:
                row = row.with_password(hash_password(new_password, self._min_password_length))
            elif not row.password:
                existing = self._gateway.cache.snapshot.find_user(email)
                if existing is not None:
                    row = row.with_password(existing.password)
            return row.to_dict(include_password=True)

        return await self._gateway.submit(MutationKind.SAVE_USER, build)

    async def change_own_password(self, old_password: str, new_password: str) -> MutationResult:
        def build(actor: User) -> dict:
            stored = self._gateway.cache.snapshot.find_user(actor.email)
            if stored is None:
                raise NotFoundError("User not found")
            if not verify_password(old_password, stored.password, legacy_salt=self._legacy_salt):
                raise ValidationError("The current password is incorrect")
            new_hash = hash_password(new_password.strip() if new_password else "", self._min_password_length)
            return stored.with_password(new_hash).to_dict(include_password=True)

        return await self._gateway.submit(MutationKind.CHANGE_OWN_PASSWORD, build)
