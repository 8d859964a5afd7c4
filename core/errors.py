"""
core/errors.py — Registry Error Taxonomy
=========================================
Every failure the ledger can report. Callers tell the kinds apart by class
(or by `code` once serialized); `main.py` turns them into JSON responses.

    ValidationError        malformed or missing input       not retryable
    InvalidTransferError   business rule violated           not retryable
    NotFoundError          parcel / owner does not exist    not retryable
    PersistenceError       store failed or timed out        retryable
"""

from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base class for all registry errors."""

    code = "REGISTRY_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(RegistryError):
    """Input is missing or malformed — the caller must fix it."""

    code = "VALIDATION_ERROR"
    status_code = 422


class DuplicateParcelError(ValidationError):
    """A parcel with the same parcel number is already registered."""

    code = "DUPLICATE_PARCEL_NUMBER"
    status_code = 409


class InvalidTransferError(RegistryError):
    """The requested transfer breaks a ledger rule."""

    code = "INVALID_TRANSFER"
    status_code = 409


class NotFoundError(RegistryError):
    code = "NOT_FOUND"
    status_code = 404


class PersistenceError(RegistryError):
    """
    The store rejected a call or did not answer in time.

    `history_incomplete` is set when a multi-step write could not be rolled
    back, so a parcel and its transfer history may disagree until an operator
    reconciles them.
    """

    code = "PERSISTENCE_ERROR"
    status_code = 503
    retryable = True

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        history_incomplete: bool = False,
    ):
        super().__init__(message, details)
        self.history_incomplete = history_incomplete
        if history_incomplete:
            self.details["history_incomplete"] = True


class ConcurrentTransferError(PersistenceError):
    """Another transfer changed the parcel's owner while this one was running."""

    code = "CONCURRENT_TRANSFER"
    status_code = 409
