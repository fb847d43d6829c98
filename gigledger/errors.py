"""Exception types raised by the ledger engines."""


class LedgerError(Exception):
    """Base class for every error raised by gigledger."""


class ValidationError(LedgerError):
    """Input rejected before anything was written."""


class NotFoundError(ValidationError):
    """An id does not refer to a known entity."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"Unknown {kind} '{entity_id}'")
        self.kind = kind
        self.entity_id = entity_id


class InvariantError(LedgerError):
    """Operation would break a state invariant (e.g. two active sessions)."""


class PersistenceError(LedgerError):
    """The durable store failed; memory was left unchanged."""
