from __future__ import annotations
"""Error types raised by the console."""


class ConsoleError(Exception):
    """Base error for all console errors."""


class ValidationError(ConsoleError):
    """Raised when a request is missing required input."""


class StoreUnavailable(ConsoleError):
    """Raised when a call to the object store fails."""

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.code = code


class InvalidCursor(StoreUnavailable):
    """Raised when the store rejects a continuation token.

    The caller should drop the token and list the prefix again from the top.
    """


class FolderNotEmptyError(ConsoleError):
    """Raised when deleting a folder placeholder that still has children."""

    def __init__(self, message: str = "Folder is not empty"):
        super().__init__(message)


class NotConnectedError(ConsoleError):
    """Raised when a store operation is attempted before connecting."""
