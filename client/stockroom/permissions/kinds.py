# Overview: Mutation kind constants checked by the access gate.


class MutationKind:
    """Every write the client can send to the remote store."""
    SAVE_USER = "SAVE_USER"
    CHANGE_OWN_PASSWORD = "CHANGE_OWN_PASSWORD"
    CREATE_DOCUMENT = "CREATE_DOCUMENT"
    DISTRIBUTE = "DISTRIBUTE"
    REVERSE = "REVERSE"
