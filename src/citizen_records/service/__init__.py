"""Service module.

This module provides the access-controlled record service.
"""

from citizen_records.service.record_service import (
    CREDENTIAL_KEY_PREFIX,
    HEARTBEAT_REPLY,
    RecordService,
    credential_key,
)

__all__ = [
    "CREDENTIAL_KEY_PREFIX",
    "HEARTBEAT_REPLY",
    "RecordService",
    "credential_key",
]
