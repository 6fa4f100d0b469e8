"""JSON codec for citizen documents.

Wire field names are lower-case with no separators and match the documents
written by earlier deployments of the service (including the historical
``personahealth`` list name). Decoding validates the full document shape and
raises ``CorruptRecord`` on any mismatch; unknown keys are ignored.
"""

import json
from typing import Any, Optional

from citizen_records.models.citizen import (
    AcademicRecord,
    Address,
    Citizen,
    HealthRecord,
    RecordVariant,
    SubRecord,
)
from citizen_records.utils.exceptions import CorruptRecord

# (attribute, wire name) pairs, in wire order
ADDRESS_FIELDS = (
    ("line1", "addressline1"),
    ("line2", "addressline2"),
    ("locality", "locality"),
    ("city", "city"),
    ("state", "state"),
    ("area_code", "areacode"),
)

HEALTH_FIELDS = (
    ("record_id", "healthrecordid"),
    ("physician_name", "physicianname"),
    ("facility_name", "facilityname"),
    ("facility_address", "facilityaddress"),
    ("type_of_service", "typeofservice"),
    ("service_description", "servicedescription"),
    ("date_of_service", "dateofservice"),
    ("date_of_admission", "dateofadmission"),
    ("date_of_discharge", "dateofdischarge"),
    ("discharge_summary", "dischargesummary"),
)

ACADEMIC_FIELDS = (
    ("record_id", "academicrecordid"),
    ("institute_name", "institutename"),
    ("institute_address", "instituteaddress"),
    ("program_name", "programname"),
    ("degree", "degree"),
    ("major", "major"),
    ("grade", "grade"),
    ("date_of_completion", "dateofcompletion"),
)

CITIZEN_FIELDS = (
    ("person_id", "personid"),
    ("govt_id", "govtid"),
    ("name", "name"),
    ("gender", "gender"),
    ("dob", "dob"),
    ("blood_group", "bloodgroup"),
    ("current_address", "currentaddress"),
)

RECORD_LIST_KEYS = {
    RecordVariant.HEALTH: "personahealth",
    RecordVariant.ACADEMIC: "personaacademic",
}

_ADDRESS_ATTRS = {"facility_address", "institute_address", "current_address"}


def address_to_dict(address: Address) -> dict[str, str]:
    return {wire: getattr(address, attr) for attr, wire in ADDRESS_FIELDS}


def _record_fields(variant: RecordVariant) -> tuple[tuple[str, str], ...]:
    return HEALTH_FIELDS if variant is RecordVariant.HEALTH else ACADEMIC_FIELDS


def record_to_dict(record: SubRecord, variant: RecordVariant) -> dict[str, Any]:
    document: dict[str, Any] = {}
    for attr, wire in _record_fields(variant):
        value = getattr(record, attr)
        document[wire] = address_to_dict(value) if attr in _ADDRESS_ATTRS else value
    return document


def citizen_to_dict(citizen: Citizen, variant: RecordVariant) -> dict[str, Any]:
    """Convert a citizen to its JSON document.

    Args:
        citizen: Citizen to convert
        variant: Deployment variant deciding the sub-record shape

    Returns:
        JSON-ready dictionary
    """
    document: dict[str, Any] = {}
    for attr, wire in CITIZEN_FIELDS:
        if attr == "blood_group" and variant is not RecordVariant.HEALTH:
            continue
        value = getattr(citizen, attr)
        document[wire] = address_to_dict(value) if attr in _ADDRESS_ATTRS else value
    document[RECORD_LIST_KEYS[variant]] = [
        record_to_dict(record, variant) for record in citizen.records
    ]
    return document


def encode_citizen(citizen: Citizen, variant: RecordVariant) -> bytes:
    """Serialize a citizen to UTF-8 JSON bytes."""
    return json.dumps(
        citizen_to_dict(citizen, variant), ensure_ascii=False
    ).encode("utf-8")


def _require_str(document: dict[str, Any], wire: str, context: str) -> str:
    if wire not in document:
        raise CorruptRecord(f"Corrupt {context} record: missing field '{wire}'")
    value = document[wire]
    if not isinstance(value, str):
        raise CorruptRecord(
            f"Corrupt {context} record: field '{wire}' must be a string"
        )
    return value


def _require_dict(value: Any, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise CorruptRecord(f"Corrupt {context} record: expected a JSON object")
    return value


def address_from_dict(value: Any, context: str = "address") -> Address:
    document = _require_dict(value, context)
    return Address(
        **{attr: _require_str(document, wire, context) for attr, wire in ADDRESS_FIELDS}
    )


def record_from_dict(value: Any, variant: RecordVariant) -> SubRecord:
    context = f"{variant.value} sub-record"
    document = _require_dict(value, context)
    fields: dict[str, Any] = {}
    for attr, wire in _record_fields(variant):
        if attr in _ADDRESS_ATTRS:
            if wire not in document:
                raise CorruptRecord(f"Corrupt {context} record: missing field '{wire}'")
            fields[attr] = address_from_dict(document[wire], context)
        else:
            fields[attr] = _require_str(document, wire, context)
    if variant is RecordVariant.HEALTH:
        return HealthRecord(**fields)
    return AcademicRecord(**fields)


def citizen_from_dict(
    value: Any,
    variant: RecordVariant,
    expected_key: Optional[str] = None,
) -> Citizen:
    """Rebuild a citizen from its JSON document.

    Args:
        value: Parsed JSON value
        variant: Deployment variant deciding the sub-record shape
        expected_key: Storage key the document was loaded from; when given,
            ``personid`` must match it

    Returns:
        Decoded Citizen

    Raises:
        CorruptRecord: If the document does not have the citizen shape
    """
    document = _require_dict(value, "Citizen")
    fields: dict[str, Any] = {}
    for attr, wire in CITIZEN_FIELDS:
        if attr == "blood_group" and variant is not RecordVariant.HEALTH:
            fields[attr] = None
        elif attr == "current_address":
            if wire not in document:
                raise CorruptRecord(f"Corrupt Citizen record: missing field '{wire}'")
            fields[attr] = address_from_dict(document[wire], "Citizen address")
        else:
            fields[attr] = _require_str(document, wire, "Citizen")

    if expected_key is not None and fields["person_id"] != expected_key:
        raise CorruptRecord(
            f"Corrupt Citizen record: personid '{fields['person_id']}' "
            f"does not match key '{expected_key}'"
        )

    list_key = RECORD_LIST_KEYS[variant]
    # Older documents serialized an empty list as null
    raw_records = document.get(list_key)
    if raw_records is None:
        raw_records = []
    if not isinstance(raw_records, list):
        raise CorruptRecord(f"Corrupt Citizen record: '{list_key}' must be a list")

    citizen = Citizen(**fields)
    citizen.records = [record_from_dict(item, variant) for item in raw_records]
    return citizen


def decode_citizen(
    data: bytes,
    variant: RecordVariant,
    expected_key: Optional[str] = None,
) -> Citizen:
    """Parse UTF-8 JSON bytes into a citizen.

    Raises:
        CorruptRecord: If the bytes are not valid JSON or not a citizen
    """
    try:
        value = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptRecord(
            f"Corrupt Citizen record: {data[:200]!r}"
        ) from e
    return citizen_from_dict(value, variant, expected_key)
