"""Ledger module.

This module provides the ledger collaborator contract and the reference
in-memory and file-backed ledgers used to host the record service.
"""

from citizen_records.ledger.base import LedgerTransaction, MissingAttributeError
from citizen_records.ledger.file_ledger import FileLedger
from citizen_records.ledger.memory import MemoryLedger, MemoryTransaction

__all__ = [
    "FileLedger",
    "LedgerTransaction",
    "MemoryLedger",
    "MemoryTransaction",
    "MissingAttributeError",
]
