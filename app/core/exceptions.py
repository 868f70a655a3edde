"""
Domain exceptions.

Services raise these instead of `HTTPException` so they can be exercised
without a web stack; the route layer translates them into HTTP responses.
"""

from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    """Reason codes attached to a rejected field."""

    EMPTY_REQUIRED_FIELD = "empty-required-field"
    INVALID_NAME_CHARACTERS = "invalid-name-characters"
    NAME_TOO_LONG = "name-too-long"
    NAME_TOO_SHORT = "name-too-short"
    INVALID_CONTACT_FORMAT = "invalid-contact-format"
    INVALID_DATE = "invalid-date"
    DATE_BEFORE_MINIMUM = "date-before-minimum"
    INVALID_CATEGORY = "invalid-category"


class ContractTrackerError(Exception):
    """Base class for every error raised by the contract engine."""


class ValidationError(ContractTrackerError):
    """
    A field failed validation. Raised before any mutation is attempted.

    Attributes:
        reason (ValidationReason): Machine-readable reason code.
        message (str): Human-readable message shown next to the field.
        field (str | None): Name of the offending field.
    """

    def __init__(self, reason: ValidationReason, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"reason": self.reason.value, "field": self.field, "message": self.message}


class AuthorizationError(ContractTrackerError):
    """Credentials were supplied but could not be verified."""


class PersistenceError(ContractTrackerError):
    """The document store failed to complete an operation."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(f"Store operation '{operation}' failed: {cause}")
        self.operation = operation
        self.cause = cause


class RecordNotFoundError(ContractTrackerError):
    """No record with this id is owned by the current principal."""

    def __init__(self, record_id: str):
        super().__init__(f"Contract {record_id} not found")
        self.record_id = record_id


class InteractionError(ContractTrackerError):
    """A confirm or cancel call does not match the active interaction."""
