"""Registry of every created citizen id.

A single JSON document ``{"ids": [...]}`` under a reserved key, updated with a
load-append-save cycle. Because every create touches this one document, two
concurrent creates always read the same registry version; the ledger's commit
validation rejects the later one with ``TransactionConflict`` instead of
letting it overwrite the first.
"""

import json
import logging

from citizen_records.store.record_store import RecordStore
from citizen_records.utils.exceptions import CorruptRecord, DuplicateID, NotFound

logger = logging.getLogger(__name__)

REGISTRY_KEY = "entity-index"


def encode_registry(ids: list[str]) -> bytes:
    return json.dumps({"ids": ids}).encode("utf-8")


class Registry:
    """Append-only ordered index of citizen ids.

    Args:
        store: Record store of the current invocation
        key: Reserved key the index document lives under
    """

    def __init__(self, store: RecordStore, key: str = REGISTRY_KEY) -> None:
        self.store = store
        self.key = key

    def list(self) -> list[str]:
        """Return all registered ids in creation order.

        A ledger that was never bootstrapped has no index document yet; that
        reads as an empty registry.

        Raises:
            CorruptRecord: If the index document is malformed
        """
        try:
            data = self.store.get(self.key)
        except NotFound:
            return []

        try:
            document = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptRecord("Corrupt ID_Holder record") from e

        if not isinstance(document, dict):
            raise CorruptRecord("Corrupt ID_Holder record")
        ids = document.get("ids")
        # Bootstrap writes an empty holder whose list may be null
        if ids is None:
            return []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise CorruptRecord("Corrupt ID_Holder record")
        return ids

    def contains(self, person_id: str) -> bool:
        return person_id in self.list()

    def register(self, person_id: str) -> None:
        """Append ``person_id`` to the index.

        Raises:
            DuplicateID: If the id is already registered
            CorruptRecord: If the index document is malformed
            StoreError: If the write fails
        """
        ids = self.list()
        if person_id in ids:
            raise DuplicateID(f"ID {person_id} is already registered")
        ids.append(person_id)
        self.store.put(self.key, encode_registry(ids))
        logger.debug("Registered %s (%d ids)", person_id, len(ids))
