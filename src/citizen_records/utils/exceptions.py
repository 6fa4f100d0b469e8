"""Custom exception classes for the citizen records service.

All exceptions inherit from CitizenRecordsError to allow catching all custom
exceptions at the invocation boundary. The message string of each exception is
the only thing a ledger caller ever sees; ``kind`` is the internal structured
classification used by the HTTP host and by error categorization.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class ErrorKind(str, Enum):
    """Structured error kinds carried by every service exception."""

    ARGUMENT = "ArgumentError"
    IDENTITY = "IdentityError"
    PERMISSION_DENIED = "PermissionDenied"
    NOT_FOUND = "NotFound"
    DUPLICATE_ID = "DuplicateID"
    CORRUPT_RECORD = "CorruptRecord"
    STORE = "StoreError"
    CONFLICT = "TransactionConflict"
    UNKNOWN_OPERATION = "UnknownOperation"
    CONFIGURATION = "ConfigurationError"
    TRANSPORT = "TransportError"


class CitizenRecordsError(Exception):
    """Base exception for all citizen records custom exceptions."""

    kind: ErrorKind = ErrorKind.STORE


class ArgumentError(CitizenRecordsError):
    """Raised when a required argument is missing, empty or miscounted.

    Examples:
        - Empty person ID on create
        - Wrong number of positional arguments for an invocation
    """

    kind = ErrorKind.ARGUMENT


class IdentityError(CitizenRecordsError):
    """Raised when the caller's username or role attribute cannot be resolved.

    This is fatal for the whole invocation.
    """

    kind = ErrorKind.IDENTITY


class PermissionDenied(CitizenRecordsError):
    """Raised when the caller's role is not allowed to perform an operation."""

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, operation: str, role: Optional[str] = None) -> None:
        super().__init__(f"Permission denied. {operation}")
        self.operation = operation
        self.role = role


class NotFound(CitizenRecordsError):
    """Raised when no entity, sub-record or raw key exists at the given id."""

    kind = ErrorKind.NOT_FOUND


class DuplicateID(CitizenRecordsError):
    """Raised when create targets an id that already holds a document."""

    kind = ErrorKind.DUPLICATE_ID


class DuplicateRecordID(DuplicateID):
    """Raised when a sub-record id is already used within the same citizen."""


class CorruptRecord(CitizenRecordsError):
    """Raised when stored bytes fail to decode as the expected document shape.

    Never swallowed: aborts the operation and is surfaced to the caller.
    """

    kind = ErrorKind.CORRUPT_RECORD


class StoreError(CitizenRecordsError):
    """Raised when an underlying ledger get/put fails."""

    kind = ErrorKind.STORE


class TransactionConflict(StoreError):
    """Raised at commit when a key read by the transaction changed underneath it.

    This is how a lost update on the shared registry document surfaces. The
    ledger host may re-execute the invocation; otherwise it is rejected.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, keys: list[str]) -> None:
        super().__init__(
            f"Transaction conflict on keys: {', '.join(sorted(keys))}"
        )
        self.keys = sorted(keys)


class UnknownOperation(CitizenRecordsError):
    """Raised when an invocation name has no handler."""

    kind = ErrorKind.UNKNOWN_OPERATION


class ConfigurationError(CitizenRecordsError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Invalid configuration file format
        - Two abstract roles mapped to the same attestation role
    """

    kind = ErrorKind.CONFIGURATION


class TransportError(CitizenRecordsError):
    """Raised when a remote ledger host cannot be reached or answers badly."""

    kind = ErrorKind.TRANSPORT


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    Attributes:
        TRANSIENT: Safe to re-execute the invocation (commit conflicts, network)
        PERMANENT: Re-executing gives the same answer (permission, duplicates)
        CRITICAL: Operator attention needed (corrupt documents, store failure)
    """

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    CRITICAL = "CRITICAL"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (TRANSIENT, PERMANENT, CRITICAL)
        error_type: Exception class name (e.g., "PermissionDenied")
        kind: Structured error kind value
        message: Message returned to the caller
        remediation: Actionable guidance for resolving the error
        is_retryable: Whether the invocation may be re-executed
        technical_details: Optional chained cause for debugging
        person_id: Optional citizen id the failing invocation targeted
    """

    category: ErrorCategory
    error_type: str
    kind: str
    message: str
    remediation: str
    is_retryable: bool
    technical_details: Optional[str] = None
    person_id: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(TransactionConflict(["entity-index"]))
        <ErrorCategory.TRANSIENT: 'TRANSIENT'>
        >>> categorize_error(PermissionDenied("create"))
        <ErrorCategory.PERMANENT: 'PERMANENT'>
    """
    if isinstance(exception, (TransactionConflict, TransportError)):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, (requests.Timeout, requests.ConnectionError)):
        return ErrorCategory.TRANSIENT

    if isinstance(
        exception,
        (CorruptRecord, StoreError, IdentityError, ConfigurationError),
    ):
        return ErrorCategory.CRITICAL

    # Argument, permission, not found, duplicates, unknown operations
    return ErrorCategory.PERMANENT


def create_error_info(
    exception: Exception,
    person_id: Optional[str] = None,
) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred
        person_id: Optional citizen id the invocation targeted

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)
    kind = getattr(exception, "kind", ErrorKind.STORE)

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = (
            f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"
        )

    return ErrorInfo(
        category=category,
        error_type=type(exception).__name__,
        kind=kind.value if isinstance(kind, ErrorKind) else str(kind),
        message=str(exception),
        remediation=_generate_remediation(exception),
        is_retryable=category == ErrorCategory.TRANSIENT,
        technical_details=technical_details,
        person_id=person_id,
    )


def _generate_remediation(exception: Exception) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, TransactionConflict):
        return (
            "Another transaction modified the same document. "
            "Re-submit the invocation or raise ledger.max_commit_retries."
        )

    if isinstance(exception, CorruptRecord):
        return (
            "A stored document does not match the citizen schema. "
            "Inspect it with 'citizen-records query readKey <key>'."
        )

    if isinstance(exception, IdentityError):
        return "Supply both 'username' and 'role' caller attributes."

    if isinstance(exception, PermissionDenied):
        return "Invoke the operation with a role allowed by the access policy."

    if isinstance(exception, DuplicateID):
        return "Use 'checkUnique' before creating, or pick a different id."

    if isinstance(exception, NotFound):
        return "Check the id, or create the citizen first."

    if isinstance(exception, (ArgumentError, UnknownOperation)):
        return "Check the invocation name and its positional arguments."

    if isinstance(exception, ConfigurationError):
        return "Check config.json for missing or invalid values."

    if isinstance(exception, (TransportError, requests.ConnectionError, requests.Timeout)):
        return "Check that the ledger host is running and client.base_url is correct."

    return "Review the error message and the service log for details."
