from __future__ import annotations

"""Error types shared by the in-memory stores."""


class NotConfiguredError(RuntimeError):
    """Raised when a store operation needs a collaborator that was never bound."""
    pass


class PersistenceError(RuntimeError):
    """Raised when an index file cannot be decoded into store records."""
    pass
