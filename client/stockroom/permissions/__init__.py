# Overview: Access table package.
# Re-exports all public APIs for the access gate.

from .kinds import MutationKind
from .definitions import MUTATION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_mutation_codes,
    get_mutation_definition,
    wire_action_for,
    validate_mutation_code,
    role_allows,
)

__all__ = [
    "MutationKind",
    "MUTATION_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_mutation_codes",
    "get_mutation_definition",
    "wire_action_for",
    "validate_mutation_code",
    "role_allows",
]
