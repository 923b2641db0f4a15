"""
Order store exceptions.

Not-found is never an exception here: lookups return None and mutations
return an affected-row count.
"""


class PersistenceError(Exception):
    """Base exception for order store errors."""


class StoreOpenError(PersistenceError):
    """Raised when the database file exists but cannot be loaded."""


class MigrationError(PersistenceError):
    """Raised when a schema rebuild fails. The previous table is left intact."""


class StatementError(PersistenceError):
    """Raised when a statement is malformed or rejected by the database."""


class WriteError(PersistenceError):
    """Raised when the database image cannot be written to disk."""
