"""Invocation result data models.

This module defines the result returned by the operation router and the ledger
host for every invocation, successful or not.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InvocationStatus(Enum):
    """Invocation outcome status."""

    OK = "OK"
    NOT_UNIQUE = "NOT_UNIQUE"
    ERROR = "ERROR"


@dataclass
class InvocationResult:
    """Result of one ledger invocation.

    The wire format only carries ``payload`` on success and ``message`` on
    failure; ``error_kind`` is the internal structured classification.

    Attributes:
        function: Invocation name as requested by the caller
        status: Outcome status
        payload: Response bytes (UTF-8 JSON or plain text), may be empty
        message: Human-readable message (error text or informational status)
        error_kind: ErrorKind value when status is ERROR
        attempts: Number of times the ledger host executed the invocation

    Example:
        >>> result = InvocationResult(function="heartbeat", payload=b"Alive!!!")
        >>> result.is_success
        True
    """

    function: str
    status: InvocationStatus = InvocationStatus.OK
    payload: bytes = b""
    message: Optional[str] = None
    error_kind: Optional[str] = None
    attempts: int = 1

    @property
    def is_success(self) -> bool:
        """Check if the invocation succeeded.

        Returns:
            True unless status is ERROR (NOT_UNIQUE is informational)
        """
        return self.status is not InvocationStatus.ERROR

    def payload_text(self) -> str:
        """Decode the payload as UTF-8 text."""
        return self.payload.decode("utf-8")

    def to_dict(self) -> dict:
        """Convert to the JSON body used by the HTTP host."""
        return {
            "function": self.function,
            "status": self.status.value,
            "payload": self.payload_text(),
            "message": self.message,
            "error_kind": self.error_kind,
            "attempts": self.attempts,
        }
