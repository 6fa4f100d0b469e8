"""Router module.

This module maps invocation names to record service operations.
"""

from citizen_records.router.operations import (
    InvocationMode,
    OperationRouter,
    academic_record_from_args,
    address_from_args,
    health_record_from_args,
)

__all__ = [
    "InvocationMode",
    "OperationRouter",
    "academic_record_from_args",
    "address_from_args",
    "health_record_from_args",
]
