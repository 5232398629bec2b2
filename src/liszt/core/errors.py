"""
Registry error kinds.

Every failure that crosses the Registrar boundary is one of these.
Driver errors (sqlite3, OSError, YAML) are chained as ``__cause__``
and never raised directly.
"""


class RegistryError(Exception):
    """Base class for registry failures."""
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(RegistryError):
    """Bad or missing required input, e.g. an empty building name."""


class NotFoundError(RegistryError):
    """An operation that must act on a referenced entity could not find it."""


class ConflictError(RegistryError):
    """A backend constraint was violated."""


class UnavailableError(RegistryError):
    """Storage I/O failed."""


class CancelledError(UnavailableError):
    """The request context was cancelled before the operation finished."""


class DeadlineExceededError(UnavailableError):
    """The request context deadline passed before the operation finished."""


class CorruptRecordError(UnavailableError):
    """A stored item could not be decoded into an entity."""
