"""
Exception hierarchy for meowpad.

Every error carries the operation that failed and the offending input
(a URL, tag, title, or identifier) so the CLI can report both.
"""
from typing import Optional


class MeowpadError(Exception):
    """Base class for all meowpad errors."""

    def __init__(self, message: str, operation: Optional[str] = None, subject: Optional[str] = None):
        self.message = message
        self.operation = operation
        self.subject = subject
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ValidationError(MeowpadError):
    """Malformed input: bad tag, non-web URL, missing filter."""
    pass


class Conflict(MeowpadError):
    """A row with the same natural key already exists."""
    pass


class NotFound(MeowpadError):
    """A lookup matched nothing."""
    pass


class ExternalFetchError(MeowpadError):
    """The page could not be fetched or parsed."""
    pass


class StorageError(MeowpadError):
    """The database engine rejected an operation or failed."""
    pass
