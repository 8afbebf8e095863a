# threadboard/core/exceptions.py
"""
Error kinds raised by the thread store.

Every error carries the name of the operation that failed and the underlying
message, so ``str(err)`` reads like ``"Failed to create thread: <reason>"``.
"""
from typing import Optional


class ThreadStoreError(Exception):
    """Base class for all thread store failures."""

    kind = "error"

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"Failed to {operation}: {message}")


class ValidationError(ThreadStoreError):
    """Input rejected before touching the database (blank text, bad ids, bad paging)."""

    kind = "validation"


class NotFoundError(ThreadStoreError):
    """A referenced thread does not exist."""

    kind = "not_found"


class PersistenceError(ThreadStoreError):
    """A read or write against MongoDB failed."""

    kind = "persistence"


class DatabaseConnectionError(PersistenceError):
    """MongoDB could not be reached."""

    kind = "connection"

    def __init__(self, operation: str, message: str, url: Optional[str] = None):
        super().__init__(operation, message)
        self.url = url
