"""Policy module.

This module provides the role-based access policy and redaction projections.
"""

from citizen_records.policy.access import (
    ACCESS_MATRIX,
    OPEN_OPERATIONS,
    AccessPolicy,
    Caller,
    Operation,
    Role,
)
from citizen_records.policy.projection import (
    FULL_VIEW,
    REDACTED_VIEW,
    project,
)

__all__ = [
    "ACCESS_MATRIX",
    "FULL_VIEW",
    "OPEN_OPERATIONS",
    "REDACTED_VIEW",
    "AccessPolicy",
    "Caller",
    "Operation",
    "Role",
    "project",
]
