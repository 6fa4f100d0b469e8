"""Record service: the access-controlled business core.

Every operation checks the access policy for the resolved caller before it
touches state, loads the citizen through the record store, mutates it in
memory and stages the new document. Nothing is written on failure; the ledger
host commits the staged write-set only when the whole operation succeeded.
"""

import logging

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
from citizen_records.policy.access import AccessPolicy, Caller, Operation
from citizen_records.policy.projection import FULL_VIEW, REDACTED_VIEW, project
from citizen_records.store.record_store import RecordStore
from citizen_records.store.registry import Registry
from citizen_records.utils.exceptions import (
    ArgumentError,
    CorruptRecord,
    DuplicateID,
    DuplicateRecordID,
    NotFound,
    UnknownOperation,
)

logger = logging.getLogger(__name__)

HEARTBEAT_REPLY = b"Alive!!!"
CREDENTIAL_KEY_PREFIX = "ecert:"


def credential_key(name: str) -> str:
    """Ledger key holding the pre-provisioned credential of ``name``."""
    return f"{CREDENTIAL_KEY_PREFIX}{name}"


class RecordService:
    """Citizen create, patch and query operations.

    Args:
        store: Record store bound to the current invocation
        registry: Citizen id registry over the same store
        policy: Access policy
        variant: Sub-record shape of this deployment
    """

    def __init__(
        self,
        store: RecordStore,
        registry: Registry,
        policy: AccessPolicy,
        variant: RecordVariant,
    ) -> None:
        self.store = store
        self.registry = registry
        self.policy = policy
        self.variant = variant

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, caller: Caller, *, person_id: str, dob: str, gender: str) -> Citizen:
        """Create a citizen with sentinel defaults and register its id.

        Args:
            caller: Resolved caller
            person_id: New storage key
            dob: Date of birth
            gender: Gender

        Returns:
            The created citizen

        Raises:
            PermissionDenied: If the caller is not the registry authority
            ArgumentError: If ``person_id`` is empty
            DuplicateID: If a document already exists at ``person_id``
        """
        self.policy.check(Operation.CREATE, caller)
        if not person_id:
            raise ArgumentError("Invalid PersonID provided")
        if person_id == self.registry.key:
            raise ArgumentError(f"PersonID '{person_id}' is a reserved key")
        if self.store.exists(person_id):
            raise DuplicateID("Citizen already exists")

        citizen = new_citizen(
            person_id=person_id, dob=dob, gender=gender, variant=self.variant
        )
        # The entity write is staged before the registry entry, and both
        # commit together or not at all.
        self.store.save_entity(citizen)
        self.registry.register(person_id)
        logger.info("Created citizen %s by %s", person_id, caller.name)
        return citizen

    def set_external_id(self, caller: Caller, person_id: str, govt_id: str) -> Citizen:
        """Replace the government id."""
        citizen = self._load_for(Operation.SET_EXTERNAL_ID, caller, person_id)
        citizen.govt_id = govt_id
        return self._save(citizen, Operation.SET_EXTERNAL_ID, caller)

    def set_name(self, caller: Caller, person_id: str, name: str) -> Citizen:
        """Replace the display name."""
        citizen = self._load_for(Operation.SET_NAME, caller, person_id)
        citizen.name = name
        return self._save(citizen, Operation.SET_NAME, caller)

    def set_blood_group(self, caller: Caller, person_id: str, blood_group: str) -> Citizen:
        """Replace the blood group (health deployments only)."""
        self._require_variant(Operation.SET_BLOOD_GROUP, RecordVariant.HEALTH)
        citizen = self._load_for(Operation.SET_BLOOD_GROUP, caller, person_id)
        citizen.blood_group = blood_group
        return self._save(citizen, Operation.SET_BLOOD_GROUP, caller)

    def set_address(self, caller: Caller, person_id: str, address: Address) -> Citizen:
        """Replace the current address as a whole value."""
        citizen = self._load_for(Operation.SET_ADDRESS, caller, person_id)
        citizen.current_address = address
        return self._save(citizen, Operation.SET_ADDRESS, caller)

    def add_sub_record(self, caller: Caller, person_id: str, record: SubRecord) -> Citizen:
        """Append a new sub-record to the citizen's log.

        Raises:
            ArgumentError: If the record id is empty or the record shape does
                not match the deployment variant
            DuplicateRecordID: If the citizen already has a record with that id
        """
        citizen = self._load_for(Operation.ADD_SUB_RECORD, caller, person_id)
        expected = HealthRecord if self.variant is RecordVariant.HEALTH else AcademicRecord
        if not isinstance(record, expected):
            raise ArgumentError(
                f"{type(record).__name__} cannot be added to a {self.variant.value} deployment"
            )
        if not record.record_id:
            raise ArgumentError("Invalid record ID provided")
        if citizen.find_record(record.record_id) is not None:
            raise DuplicateRecordID(
                f"Record {record.record_id} already exists for person {person_id}"
            )
        citizen.records.append(record)
        return self._save(citizen, Operation.ADD_SUB_RECORD, caller)

    def close_sub_record(
        self,
        caller: Caller,
        person_id: str,
        record_id: str,
        date_of_discharge: str,
        discharge_summary: str,
    ) -> Citizen:
        """Close an open health record.

        Raises:
            NotFound: If the citizen has no record with ``record_id``
            ArgumentError: If the record is already closed, or the discharge
                date or summary is empty or UNDEFINED
        """
        self._require_variant(Operation.CLOSE_SUB_RECORD, RecordVariant.HEALTH)
        citizen = self._load_for(Operation.CLOSE_SUB_RECORD, caller, person_id)
        record = citizen.find_record(record_id)
        if record is None:
            raise NotFound(
                f"No health record {record_id} found for person {person_id}"
            )
        if record.is_closed:
            raise ArgumentError(f"Health record {record_id} is already closed")
        for field, value in (
            ("discharge date", date_of_discharge),
            ("discharge summary", discharge_summary),
        ):
            if not value or value == UNDEFINED:
                raise ArgumentError(f"Invalid {field} provided: '{value}'")
        record.close(date_of_discharge, discharge_summary)
        return self._save(citizen, Operation.CLOSE_SUB_RECORD, caller)

    def write_key(self, caller: Caller, key: str, value: bytes) -> None:
        """Store raw bytes under an arbitrary key.

        Raises:
            ArgumentError: If ``key`` is empty, the reserved registry key, or
                holds a citizen document
        """
        self.policy.check(Operation.WRITE_KEY, caller)
        if not key:
            raise ArgumentError("Incorrect arguments. Expecting a non-empty key")
        if key == self.registry.key:
            raise ArgumentError(f"Key '{key}' is reserved")
        if self.registry.contains(key) or self._holds_citizen(key):
            raise ArgumentError(f"Key '{key}' holds a citizen record")
        self.store.put(key, value)
        logger.info("Raw write to %s by %s", key, caller.name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_redacted_entity(self, caller: Caller, person_id: str) -> Citizen:
        """Return the citizen with its sub-record log removed."""
        citizen = self._load_for(Operation.GET_REDACTED_ENTITY, caller, person_id)
        return project(citizen, REDACTED_VIEW)

    def get_full_entity(self, caller: Caller, person_id: str) -> Citizen:
        """Return the citizen including its sub-record log."""
        citizen = self._load_for(Operation.GET_FULL_ENTITY, caller, person_id)
        return project(citizen, FULL_VIEW)

    def list_all(self, caller: Caller) -> list[Citizen]:
        """Return every registered citizen, redacted, in creation order.

        Citizens whose documents are missing or corrupt are skipped and logged
        rather than failing the whole listing.
        """
        self.policy.check(Operation.LIST_ALL, caller)
        citizens: list[Citizen] = []
        for person_id in self.registry.list():
            try:
                citizen = self.store.load_entity(person_id)
            except (NotFound, CorruptRecord) as e:
                logger.warning("Skipping %s in listing: %s", person_id, e)
                continue
            citizens.append(project(citizen, REDACTED_VIEW))
        return citizens

    def check_unique(self, caller: Caller, person_id: str) -> bool:
        """Check that no document exists at ``person_id``."""
        self.policy.check(Operation.CHECK_UNIQUE, caller)
        return not self.store.exists(person_id)

    def read_key(self, caller: Caller, key: str) -> bytes:
        """Return raw bytes stored under ``key``."""
        self.policy.check(Operation.READ_KEY, caller)
        return self.store.get(key)

    def get_credential(self, caller: Caller, name: str) -> bytes:
        """Return the pre-provisioned credential of user ``name``."""
        self.policy.check(Operation.GET_CREDENTIAL, caller)
        try:
            return self.store.get(credential_key(name))
        except NotFound:
            raise NotFound(f"Couldn't retrieve ecert for user {name}") from None

    def heartbeat(self, caller: Caller) -> bytes:
        """Return the liveness reply to any resolved caller."""
        self.policy.check(Operation.HEARTBEAT, caller)
        return HEARTBEAT_REPLY

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_for(self, operation: Operation, caller: Caller, person_id: str) -> Citizen:
        self.policy.check(operation, caller)
        if not person_id:
            raise ArgumentError("Invalid PersonID provided")
        return self.store.load_entity(person_id)

    def _save(self, citizen: Citizen, operation: Operation, caller: Caller) -> Citizen:
        self.store.save_entity(citizen)
        logger.info(
            "%s applied to %s by %s", operation.value, citizen.person_id, caller.name
        )
        return citizen

    def _holds_citizen(self, key: str) -> bool:
        if not self.store.exists(key):
            return False
        try:
            self.store.load_entity(key)
        except CorruptRecord:
            return False
        return True

    def _require_variant(self, operation: Operation, variant: RecordVariant) -> None:
        if self.variant is not variant:
            raise UnknownOperation(
                f"Received unknown function invocation: {operation.value}"
            )
