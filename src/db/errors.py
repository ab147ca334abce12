"""Error taxonomy for the local persistence layer.

Every error carries a ``fatal`` flag so callers can tell setup failures
(the session is unusable) apart from failures of a single operation
(retry or pick another input).
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for all persistence failures."""

    fatal = False


class DatabaseUnavailableError(PersistenceError):
    """The database cannot be used at all in this process."""

    fatal = True


class EngineUnavailableError(DatabaseUnavailableError):
    """The embedded SQL engine cannot be loaded."""


class BlobStoreUnavailableError(DatabaseUnavailableError):
    """The durable key-value store is inaccessible."""


class InvalidImportError(PersistenceError):
    """An imported file is not a loadable database image."""

    DEFAULT_MESSAGE = (
        "The selected file is not a valid database file. Please import a file "
        "that was previously exported from this application."
    )

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


class ConstraintViolationError(PersistenceError):
    """A statement violated a storage constraint (e.g. a foreign key)."""


class SessionStateError(PersistenceError):
    """An operation was attempted in a state that does not allow it."""


class JobValidationError(PersistenceError, ValueError):
    """Job title/description failed application-level validation."""


class JobNotFoundError(PersistenceError, LookupError):
    """The referenced job does not exist."""


class CredentialError(Exception):
    """The analysis service rejected the supplied credential."""


class AnalysisPayloadError(PersistenceError):
    """A stored analysis payload does not match the analysis result shape."""
