"""Custom exception hierarchy for notecache."""


class NoteCacheError(Exception):
    """Base exception for all notecache errors."""


class NetworkFailure(NoteCacheError):
    """Raised when a remote store call is rejected (transport, HTTP status, payload)."""


class InvalidPathError(NoteCacheError):
    """Raised when a path fails validation (null bytes, control chars, escapes)."""


class StoreClosedError(NoteCacheError):
    """Raised when an operation is issued against a closed note store."""
