"""Record store over a ledger transaction.

The only component that touches raw ledger bytes. Distinguishes a key that was
never written (``NotFound``) from one holding undecodable bytes
(``CorruptRecord``).
"""

import logging

from citizen_records.ledger.base import LedgerTransaction
from citizen_records.models.citizen import Citizen, RecordVariant
from citizen_records.store.codec import decode_citizen, encode_citizen
from citizen_records.utils.exceptions import CitizenRecordsError, NotFound, StoreError

logger = logging.getLogger(__name__)


class RecordStore:
    """JSON document access for one invocation.

    Args:
        tx: Ledger transaction the invocation runs in
        variant: Deployment variant used to encode and decode citizens
    """

    def __init__(self, tx: LedgerTransaction, variant: RecordVariant) -> None:
        self.tx = tx
        self.variant = variant

    def get(self, key: str) -> bytes:
        """Read raw bytes at ``key``.

        Raises:
            NotFound: If nothing is stored at ``key``
            StoreError: If the ledger read fails
        """
        value = self._get_state(key)
        if value is None:
            raise NotFound(f"No record found for key {key}")
        return value

    def exists(self, key: str) -> bool:
        """Check whether any document is stored at ``key``."""
        return self._get_state(key) is not None

    def put(self, key: str, value: bytes) -> None:
        """Stage raw bytes under ``key``.

        Raises:
            StoreError: If the ledger write fails
        """
        try:
            self.tx.put_state(key, value)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Error storing record at key {key}: {e}") from e

    def load_entity(self, person_id: str) -> Citizen:
        """Load and decode the citizen stored under ``person_id``.

        Raises:
            NotFound: If no citizen was created at ``person_id``
            CorruptRecord: If the stored bytes are not a valid citizen
        """
        value = self._get_state(person_id)
        if value is None:
            raise NotFound(f"Error retrieving person with ID = {person_id}")
        return decode_citizen(value, self.variant, expected_key=person_id)

    def save_entity(self, citizen: Citizen) -> None:
        """Encode ``citizen`` and stage it under its own ``person_id``."""
        self.put(citizen.person_id, encode_citizen(citizen, self.variant))
        logger.debug("Staged citizen record %s", citizen.person_id)

    def _get_state(self, key: str) -> bytes | None:
        try:
            return self.tx.get_state(key)
        except CitizenRecordsError:
            raise
        except Exception as e:
            raise StoreError(f"Error retrieving record at key {key}: {e}") from e
