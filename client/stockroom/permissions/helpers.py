# Overview: Utility functions for mutation lookups and validation.

from .definitions import MUTATION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_mutation_codes():
    """Get list of all mutation codes."""
    return [mut[0] for mut in MUTATION_DEFINITIONS]


def get_mutation_definition(code):
    """Get full definition for a mutation code."""
    for mut in MUTATION_DEFINITIONS:
        if mut[0] == code:
            return {
                "code": mut[0],
                "action": mut[1],
                "description": mut[2],
            }
    return None


def wire_action_for(code):
    """Remote `action` name a mutation kind is posted as."""
    definition = get_mutation_definition(code)
    if definition is None:
        raise KeyError(f"Unknown mutation kind: {code}")
    return definition["action"]


def validate_mutation_code(code):
    """Check if a mutation code is valid."""
    return code in get_all_mutation_codes()


def role_allows(role, code):
    """Unknown roles get nothing."""
    return code in DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())
