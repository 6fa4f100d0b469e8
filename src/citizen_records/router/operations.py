"""Operation router.

Maps an invocation name and its positional string arguments to a record
service method. The caller's identity is always resolved first, so an
unresolvable caller is rejected whatever was requested. Mutating invocations
and read-only queries have separate tables; the names used by earlier
deployments are accepted as aliases.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from citizen_records.identity.resolver import IdentityResolver
from citizen_records.ledger.base import LedgerTransaction
from citizen_records.models.citizen import (
    AcademicRecord,
    Address,
    HealthRecord,
    RecordVariant,
)
from citizen_records.models.responses import InvocationResult, InvocationStatus
from citizen_records.policy.access import AccessPolicy, Caller, Operation
from citizen_records.service.record_service import RecordService
from citizen_records.store.codec import citizen_to_dict
from citizen_records.store.record_store import RecordStore
from citizen_records.store.registry import Registry
from citizen_records.utils.exceptions import ArgumentError, UnknownOperation

logger = logging.getLogger(__name__)

ADDRESS_ARG_COUNT = 6
SUB_RECORD_FIELD_COUNT = 12


class InvocationMode(str, Enum):
    """Mutating invocation or read-only query."""

    INVOKE = "invoke"
    QUERY = "query"


HandlerFn = Callable[["OperationRouter", RecordService, Caller, list[str]], InvocationResult]


@dataclass(frozen=True)
class Route:
    """Bound handler with its fixed positional argument count."""

    operation: Operation
    arg_count: int
    handler: HandlerFn


def address_from_args(args: list[str]) -> Address:
    """Build an Address from six positional arguments."""
    line1, line2, locality, city, state, area_code = args
    return Address(
        line1=line1,
        line2=line2,
        locality=locality,
        city=city,
        state=state,
        area_code=area_code,
    )


def health_record_from_args(record_id: str, fields: list[str]) -> HealthRecord:
    """Build an open HealthRecord from its twelve descriptive arguments.

    Argument order: physician name, facility name, six facility address
    fields, type of service, service description, date of service, date of
    admission.
    """
    return HealthRecord(
        record_id=record_id,
        physician_name=fields[0],
        facility_name=fields[1],
        facility_address=address_from_args(fields[2:8]),
        type_of_service=fields[8],
        service_description=fields[9],
        date_of_service=fields[10],
        date_of_admission=fields[11],
    )


def academic_record_from_args(record_id: str, fields: list[str]) -> AcademicRecord:
    """Build an AcademicRecord from its twelve descriptive arguments.

    Argument order: institute name, six institute address fields, program
    name, degree, major, grade, date of completion.
    """
    return AcademicRecord(
        record_id=record_id,
        institute_name=fields[0],
        institute_address=address_from_args(fields[1:7]),
        program_name=fields[7],
        degree=fields[8],
        major=fields[9],
        grade=fields[10],
        date_of_completion=fields[11],
    )


class OperationRouter:
    """State-free dispatch from invocation name to record service method.

    Args:
        policy: Access policy injected into every service instance
        variant: Sub-record shape of this deployment

    Example:
        >>> router = OperationRouter(AccessPolicy(RolesConfig()), RecordVariant.HEALTH)
        >>> result = router.route(tx, "heartbeat", [], InvocationMode.QUERY)
        >>> result.payload
        b'Alive!!!'
    """

    def __init__(self, policy: AccessPolicy, variant: RecordVariant) -> None:
        self.policy = policy
        self.variant = variant
        self._tables = {
            InvocationMode.INVOKE: self._invoke_table(),
            InvocationMode.QUERY: self._query_table(),
        }

    def functions(self, mode: InvocationMode) -> list[str]:
        """Return the invocation names accepted in ``mode``."""
        return sorted(self._tables[mode])

    def route(
        self,
        tx: LedgerTransaction,
        function: str,
        args: list[str],
        mode: InvocationMode = InvocationMode.INVOKE,
    ) -> InvocationResult:
        """Resolve the caller and dispatch one invocation.

        Args:
            tx: Ledger transaction the invocation runs in
            function: Invocation name
            args: Positional string arguments
            mode: Table to dispatch from

        Returns:
            InvocationResult for a successful invocation

        Raises:
            IdentityError: If the caller cannot be resolved
            UnknownOperation: If ``function`` is not in the table
            ArgumentError: If the argument count is wrong
            CitizenRecordsError: Any failure raised by the service
        """
        caller = IdentityResolver(tx, self.policy).resolve()
        logger.debug("%s %s by %s (%s)", mode.value, function, caller.name, caller.role_attribute)

        route = self._tables[mode].get(function)
        if route is None:
            kind = "invocation" if mode is InvocationMode.INVOKE else "query"
            raise UnknownOperation(f"Received unknown function {kind}: {function}")
        if len(args) != route.arg_count:
            raise ArgumentError(
                f"Incorrect number of arguments for {function}. "
                f"Expecting {route.arg_count}, got {len(args)}"
            )

        store = RecordStore(tx, self.variant)
        service = RecordService(store, Registry(store), self.policy, self.variant)
        result = route.handler(self, service, caller, list(args))
        result.function = function
        return result

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _invoke_table(self) -> dict[str, Route]:
        routes = {
            "create": Route(Operation.CREATE, 3, OperationRouter._create),
            "setExternalID": Route(Operation.SET_EXTERNAL_ID, 2, OperationRouter._set_external_id),
            "setName": Route(Operation.SET_NAME, 2, OperationRouter._set_name),
            "setAddress": Route(Operation.SET_ADDRESS, 1 + ADDRESS_ARG_COUNT, OperationRouter._set_address),
            "addSubRecord": Route(
                Operation.ADD_SUB_RECORD, 2 + SUB_RECORD_FIELD_COUNT, OperationRouter._add_sub_record
            ),
            "writeKey": Route(Operation.WRITE_KEY, 2, OperationRouter._write_key),
            "heartbeat": Route(Operation.HEARTBEAT, 0, OperationRouter._heartbeat),
        }
        aliases = {
            "create_person": "create",
            "add_govtid": "setExternalID",
            "add_name": "setName",
            "update_address": "setAddress",
            "write": "writeKey",
            "ping": "heartbeat",
        }
        if self.variant is RecordVariant.HEALTH:
            routes["setBloodGroup"] = Route(Operation.SET_BLOOD_GROUP, 2, OperationRouter._set_blood_group)
            routes["closeSubRecord"] = Route(Operation.CLOSE_SUB_RECORD, 4, OperationRouter._close_sub_record)
            aliases.update(
                {
                    "add_bloodgroup": "setBloodGroup",
                    "add_healthrecord": "addSubRecord",
                    "update_healthrecord": "closeSubRecord",
                }
            )
        return self._with_aliases(routes, aliases)

    def _query_table(self) -> dict[str, Route]:
        routes = {
            "getRedactedEntity": Route(Operation.GET_REDACTED_ENTITY, 1, OperationRouter._get_redacted_entity),
            "getFullEntity": Route(Operation.GET_FULL_ENTITY, 1, OperationRouter._get_full_entity),
            "listAll": Route(Operation.LIST_ALL, 0, OperationRouter._list_all),
            "checkUnique": Route(Operation.CHECK_UNIQUE, 1, OperationRouter._check_unique),
            "readKey": Route(Operation.READ_KEY, 1, OperationRouter._read_key),
            "getCredential": Route(Operation.GET_CREDENTIAL, 1, OperationRouter._get_credential),
            "heartbeat": Route(Operation.HEARTBEAT, 0, OperationRouter._heartbeat),
        }
        aliases = {
            "get_person_details": "getRedactedEntity",
            "get_health_details": "getFullEntity",
            "get_persons": "listAll",
            "check_unique_ID": "checkUnique",
            "read": "readKey",
            "get_ecert": "getCredential",
            "ping": "heartbeat",
        }
        return self._with_aliases(routes, aliases)

    @staticmethod
    def _with_aliases(routes: dict[str, Route], aliases: dict[str, str]) -> dict[str, Route]:
        table = dict(routes)
        for alias, target in aliases.items():
            table[alias] = routes[target]
        return table

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _entity_payload(self, citizen) -> bytes:
        return json.dumps(citizen_to_dict(citizen, self.variant), ensure_ascii=False).encode("utf-8")

    def _create(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        person_id, dob, gender = args
        service.create(caller, person_id=person_id, dob=dob, gender=gender)
        return InvocationResult(function="create")

    def _set_external_id(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        service.set_external_id(caller, args[0], args[1])
        return InvocationResult(function="setExternalID")

    def _set_name(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        service.set_name(caller, args[0], args[1])
        return InvocationResult(function="setName")

    def _set_blood_group(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        service.set_blood_group(caller, args[0], args[1])
        return InvocationResult(function="setBloodGroup")

    def _set_address(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        service.set_address(caller, args[0], address_from_args(args[1:]))
        return InvocationResult(function="setAddress")

    def _add_sub_record(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        person_id, record_id, fields = args[0], args[1], args[2:]
        if self.variant is RecordVariant.HEALTH:
            record = health_record_from_args(record_id, fields)
        else:
            record = academic_record_from_args(record_id, fields)
        service.add_sub_record(caller, person_id, record)
        return InvocationResult(function="addSubRecord")

    def _close_sub_record(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        person_id, record_id, date_of_discharge, discharge_summary = args
        service.close_sub_record(caller, person_id, record_id, date_of_discharge, discharge_summary)
        return InvocationResult(function="closeSubRecord")

    def _write_key(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        service.write_key(caller, args[0], args[1].encode("utf-8"))
        return InvocationResult(function="writeKey")

    def _heartbeat(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        return InvocationResult(function="heartbeat", payload=service.heartbeat(caller))

    def _get_redacted_entity(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        citizen = service.get_redacted_entity(caller, args[0])
        return InvocationResult(function="getRedactedEntity", payload=self._entity_payload(citizen))

    def _get_full_entity(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        citizen = service.get_full_entity(caller, args[0])
        return InvocationResult(function="getFullEntity", payload=self._entity_payload(citizen))

    def _list_all(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        documents = [citizen_to_dict(c, self.variant) for c in service.list_all(caller)]
        payload = json.dumps(documents, ensure_ascii=False).encode("utf-8")
        return InvocationResult(function="listAll", payload=payload)

    def _check_unique(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        if service.check_unique(caller, args[0]):
            return InvocationResult(function="checkUnique", payload=b"true")
        return InvocationResult(
            function="checkUnique",
            status=InvocationStatus.NOT_UNIQUE,
            payload=b"false",
            message="ID is not unique",
        )

    def _read_key(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        return InvocationResult(function="readKey", payload=service.read_key(caller, args[0]))

    def _get_credential(self, service: RecordService, caller: Caller, args: list[str]) -> InvocationResult:
        return InvocationResult(function="getCredential", payload=service.get_credential(caller, args[0]))
