"""Audit logging for ledger invocations.

This module emits structured audit log lines for every invocation the ledger
host executes. These are operational logs only; the ledger's own history is the
record of committed state.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

# Key fields rendered first, in this order
FIELD_ORDER = [
    "status",
    "function",
    "caller",
    "role",
    "person_id",
    "attempts",
    "duration",
    "error_kind",
    "error_message",
    "correlation_id",
]


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Audit events are logged at INFO level for successful operations and ERROR
    level for failures.

    Args:
        event_type: Type of event (e.g., "INVOCATION_COMMITTED",
                   "INVOCATION_REJECTED", "COMMIT_CONFLICT", "LEDGER_BOOTSTRAPPED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - function: Invocation name
                - caller / role: Resolved caller attributes
                - duration: Operation duration in seconds
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for related events

    Example:
        >>> log_audit_event("INVOCATION_COMMITTED", {
        ...     "status": "success",
        ...     "function": "create",
        ...     "caller": "registrar",
        ...     "duration": 0.004
        ... })
    """
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{event_type}]"]

    for field in FIELD_ORDER:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.3f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in FIELD_ORDER and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
