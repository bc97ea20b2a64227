# Overview: Access gate; authorizes every mutation before it reaches the network.

"""
Access Gate

WHY: the remote store performs no authorization of its own. This gate is
the only enforcement point, so every mutation path calls it, not just the
presentation layer.

DESIGN PRINCIPLES:
- Fail closed: unknown roles resolve to GUEST, GUEST may do nothing
- Log denials only: grants are not logged
- Denial short-circuits before any network call and raises
  AccessDeniedError, distinct from network and validation failures
"""

from __future__ import annotations

import logging

from ..exceptions import AccessDeniedError
from ..models import User
from ..permissions import role_allows, validate_mutation_code
from .session_service import SessionService

log = logging.getLogger(__name__)


class AccessGate:
    def __init__(self, session: SessionService):
        self._session = session

    def is_allowed(self, role: str, mutation: str) -> bool:
        return role_allows(role, mutation)

    async def resolve_role(self) -> str:
        user = await self._session.current_user()
        return user.role

    async def authorize(self, mutation: str) -> User:
        """
        Resolve the session user and check the access table.

        Returns the acting user; raises AccessDeniedError otherwise.
        """
        if not validate_mutation_code(mutation):
            raise ValueError(f"Unknown mutation kind: {mutation}")

        user = await self._session.current_user()
        if not self.is_allowed(user.role, mutation):
            log.warning("Access denied: %s (%s) attempted %s", user.email, user.role, mutation)
            raise AccessDeniedError(
                f"Role {user.role} may not perform {mutation}",
                role=user.role,
                mutation=mutation,
            )
        return user
