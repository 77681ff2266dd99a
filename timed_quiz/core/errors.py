"""Exception hierarchy shared by the engine, the data store and the API."""

from __future__ import annotations


class QuizPlatformError(Exception):
    """Base class for all quiz platform errors."""


class LoadError(QuizPlatformError):
    """Raised when a quiz's questions cannot be loaded; the session cannot start."""


class PersistenceError(QuizPlatformError):
    """Raised when a finished attempt could not be written to the data store."""


class ValidationError(QuizPlatformError, ValueError):
    """Raised for locally rejected input such as an out-of-range answer index."""


class PermissionDeniedError(QuizPlatformError):
    """Raised when an identity acts on a record it does not own."""


class DataStoreError(QuizPlatformError):
    """Raised by data store implementations when an operation fails."""


class NotFoundError(DataStoreError, LookupError):
    """Raised when a requested record does not exist."""


class ConflictError(DataStoreError):
    """Raised when a write would violate a uniqueness rule."""
