# Overview: All mutation definitions.
# Each mutation is defined as: (code, wire action, description)

from .kinds import MutationKind


MUTATION_DEFINITIONS = [
    (
        MutationKind.SAVE_USER,
        "saveUser",
        "Create or edit any user account",
    ),
    (
        MutationKind.CHANGE_OWN_PASSWORD,
        "saveUser",
        "Replace the credential of the logged-in user",
    ),
    (
        MutationKind.CREATE_DOCUMENT,
        "createNE",
        "Register a commitment note with its batches and ENTRY movements",
    ),
    (
        MutationKind.DISTRIBUTE,
        "distribute",
        "Record EXIT movements drawn FIFO from batches",
    ),
    (
        MutationKind.REVERSE,
        "reverse",
        "Record a REVERSAL and flag the original movement",
    ),
]
