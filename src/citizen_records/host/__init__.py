"""Host module.

This module provides the transaction executor that hosts the record service.
"""

from citizen_records.host.executor import LedgerHost

__all__ = ["LedgerHost"]
