"""Ledger collaborator contract.

The record service runs atop an external transactional key-value ledger. This
module defines the slice of that ledger the service consumes: per-invocation
state reads and writes plus the caller's attested attributes.

Correctness precondition: the ledger must execute each transaction atomically
and detect conflicting writes (a key read by a transaction was changed before
it committed). The service itself holds no locks.
"""

from typing import Protocol


class MissingAttributeError(LookupError):
    """Raised when the ledger cannot supply a caller attribute."""


class LedgerTransaction(Protocol):
    """State and attestation access for a single invocation."""

    def get_state(self, key: str) -> bytes | None:
        """Return the bytes stored at ``key``, or None when absent."""
        ...

    def put_state(self, key: str, value: bytes) -> None:
        """Stage ``value`` under ``key`` in the transaction's write-set."""
        ...

    def get_caller_attribute(self, name: str) -> str:
        """Return an attested caller attribute.

        Raises:
            MissingAttributeError: If the attribute is absent or unreadable
        """
        ...
