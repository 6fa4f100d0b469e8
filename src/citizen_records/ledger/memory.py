"""In-process ledger with optimistic concurrency control.

Every key carries a version that starts at 0 (absent) and is bumped on each
committed write. A transaction records the version of every key it reads;
commit validates that none of those versions moved and then applies the whole
write-set at once. A stale read raises ``TransactionConflict`` so a lost update
can never be committed silently.
"""

import logging
import threading
import uuid
from typing import Iterator, Optional

from citizen_records.ledger.base import MissingAttributeError
from citizen_records.utils.exceptions import StoreError, TransactionConflict

logger = logging.getLogger(__name__)


class MemoryTransaction:
    """Read-set/write-set for one invocation against a MemoryLedger.

    Attributes:
        tx_id: Unique transaction identifier
        read_set: Key -> version observed at first read
        write_set: Key -> bytes staged for commit
    """

    def __init__(
        self,
        ledger: "MemoryLedger",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        self.tx_id = str(uuid.uuid4())
        self._ledger = ledger
        self._attributes = dict(attributes or {})
        self.read_set: dict[str, int] = {}
        self.write_set: dict[str, bytes] = {}

    def get_state(self, key: str) -> bytes | None:
        # Read-your-writes within the transaction
        if key in self.write_set:
            return self.write_set[key]
        value, version = self._ledger._read(key)
        self.read_set.setdefault(key, version)
        return value

    def put_state(self, key: str, value: bytes) -> None:
        if not key:
            raise StoreError("Cannot store a value under an empty key")
        if not isinstance(value, bytes):
            raise StoreError(f"Value for key '{key}' must be bytes")
        self.write_set[key] = value

    def get_caller_attribute(self, name: str) -> str:
        try:
            return self._attributes[name]
        except KeyError:
            raise MissingAttributeError(
                f"Couldn't get attribute '{name}'"
            ) from None


class MemoryLedger:
    """Versioned key-value ledger held in process memory.

    Thread-safe: transactions may execute concurrently and are validated and
    applied one at a time under the commit lock.

    Example:
        >>> ledger = MemoryLedger()
        >>> tx = ledger.begin({"username": "alice", "role": "govt_admin"})
        >>> tx.put_state("k", b"v")
        >>> ledger.commit(tx)
        >>> ledger.get("k")
        b'v'
    """

    def __init__(self) -> None:
        self._state: dict[str, tuple[bytes, int]] = {}
        self._lock = threading.RLock()
        self.commit_count = 0

    def begin(self, attributes: Optional[dict[str, str]] = None) -> MemoryTransaction:
        """Open a transaction carrying the caller's attested attributes."""
        return MemoryTransaction(self, attributes)

    def commit(self, tx: MemoryTransaction) -> None:
        """Validate the read-set and apply the write-set atomically.

        Args:
            tx: Transaction to commit

        Raises:
            TransactionConflict: If any key read by ``tx`` changed since
        """
        with self._lock:
            stale = [
                key
                for key, version in tx.read_set.items()
                if self._version(key) != version
            ]
            if stale:
                logger.info(
                    "Rejecting transaction %s: stale reads on %s", tx.tx_id, stale
                )
                raise TransactionConflict(stale)

            for key, value in tx.write_set.items():
                self._state[key] = (value, self._version(key) + 1)
            self.commit_count += 1
            self._persist()

        logger.debug(
            "Committed transaction %s (%d writes)", tx.tx_id, len(tx.write_set)
        )

    def get(self, key: str) -> bytes | None:
        """Read committed state outside of any transaction."""
        value, _ = self._read(key)
        return value

    def version(self, key: str) -> int:
        """Return the committed version of ``key`` (0 when absent)."""
        with self._lock:
            return self._version(key)

    def keys(self) -> Iterator[str]:
        """Iterate committed keys in sorted order."""
        with self._lock:
            keys = sorted(self._state)
        return iter(keys)

    def _read(self, key: str) -> tuple[bytes | None, int]:
        with self._lock:
            entry = self._state.get(key)
        if entry is None:
            return None, 0
        return entry

    def _version(self, key: str) -> int:
        entry = self._state.get(key)
        return entry[1] if entry else 0

    def _persist(self) -> None:
        """Hook for durable subclasses; called under the commit lock."""
