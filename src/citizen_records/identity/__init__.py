"""Identity module.

This module resolves the attested caller of an invocation.
"""

from citizen_records.identity.resolver import IdentityResolver

__all__ = ["IdentityResolver"]
