"""Models module.

This module provides data models and dataclasses for the application.
"""

from citizen_records.models.citizen import (
    UNDEFINED,
    AcademicRecord,
    Address,
    Citizen,
    HealthRecord,
    RecordVariant,
    SubRecord,
    new_citizen,
)
from citizen_records.models.responses import InvocationResult, InvocationStatus

__all__ = [
    "UNDEFINED",
    "AcademicRecord",
    "Address",
    "Citizen",
    "HealthRecord",
    "InvocationResult",
    "InvocationStatus",
    "RecordVariant",
    "SubRecord",
    "new_citizen",
]
