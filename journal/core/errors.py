"""
Error taxonomy for the journal store and similarity search.
"""


class JournalError(Exception):
    """Base class for all journal errors."""


class ValidationError(JournalError):
    """Caller error, rejected before any store access."""


class DimensionMismatch(ValidationError):
    """A vector does not have the store's fixed dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Vector dimension {actual} does not match expected dimension {expected}")


class EntryNotFound(JournalError):
    """No entry exists with the requested id."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class GenerationFailure(JournalError):
    """The embedding provider could not produce a vector."""


class StoreUnavailable(JournalError):
    """The backing store failed; the current operation did not complete."""


class SearchCancelled(JournalError):
    """A similarity search was cancelled before it finished."""
