# Overview: Default role -> permitted mutation kinds table.

from stockroom.models.auth import UserRole

from .definitions import MUTATION_DEFINITIONS
from .kinds import MutationKind


DEFAULT_ROLE_PERMISSIONS = {
    # Admin can do everything
    UserRole.ADMIN: frozenset(code for code, _action, _desc in MUTATION_DEFINITIONS),
    UserRole.MANAGER: frozenset({
        MutationKind.CREATE_DOCUMENT,
        MutationKind.DISTRIBUTE,
        MutationKind.REVERSE,
        MutationKind.CHANGE_OWN_PASSWORD,
    }),
    UserRole.OPERATOR: frozenset({
        MutationKind.DISTRIBUTE,
        MutationKind.CHANGE_OWN_PASSWORD,
    }),
    # Guests are read-only
    UserRole.GUEST: frozenset(),
}
