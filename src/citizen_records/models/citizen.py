"""Citizen identity data models.

This module defines the Citizen entity, its embedded Address value object and
the two sub-record shapes (health visits and academic records). Exactly one
sub-record shape is used per deployment, selected by ``RecordVariant``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# Sentinel for fields not yet populated by a role-gated operation
UNDEFINED = "UNDEFINED"


class RecordVariant(str, Enum):
    """Sub-record shape used by a deployment."""

    HEALTH = "health"
    ACADEMIC = "academic"


@dataclass
class Address:
    """Postal address, replaced as a whole value.

    Attributes:
        line1: First address line
        line2: Second address line
        locality: Locality or neighbourhood
        city: City
        state: State/province
        area_code: Postal area code
    """

    line1: str = UNDEFINED
    line2: str = UNDEFINED
    locality: str = UNDEFINED
    city: str = UNDEFINED
    state: str = UNDEFINED
    area_code: str = UNDEFINED


@dataclass
class HealthRecord:
    """A health visit owned by one citizen.

    Open while no discharge has been recorded; closed exactly once by
    :meth:`close`. Never deleted.

    Attributes:
        record_id: Identifier unique within the owning citizen
        physician_name: Attending physician
        facility_name: Facility providing the service
        facility_address: Facility address
        type_of_service: Service category
        service_description: Free-text description
        date_of_service: Date the service was provided
        date_of_admission: Admission date
        date_of_discharge: Discharge date (UNDEFINED while open)
        discharge_summary: Discharge summary (UNDEFINED while open)
    """

    record_id: str
    physician_name: str
    facility_name: str
    facility_address: Address
    type_of_service: str
    service_description: str
    date_of_service: str
    date_of_admission: str
    date_of_discharge: str = UNDEFINED
    discharge_summary: str = UNDEFINED

    @property
    def is_closed(self) -> bool:
        """Check if a discharge has been recorded.

        Returns:
            True once :meth:`close` has been applied
        """
        return self.date_of_discharge != UNDEFINED

    def close(self, date_of_discharge: str, discharge_summary: str) -> None:
        """Record the discharge, moving the visit from open to closed."""
        self.date_of_discharge = date_of_discharge
        self.discharge_summary = discharge_summary


@dataclass
class AcademicRecord:
    """An academic credential owned by one citizen. Append-only fact.

    Attributes:
        record_id: Identifier unique within the owning citizen
        institute_name: Awarding institute
        institute_address: Institute address
        program_name: Program of study
        degree: Degree awarded
        major: Major subject
        grade: Final grade
        date_of_completion: Completion date
    """

    record_id: str
    institute_name: str
    institute_address: Address
    program_name: str
    degree: str
    major: str
    grade: str
    date_of_completion: str


SubRecord = Union[HealthRecord, AcademicRecord]


@dataclass
class Citizen:
    """Citizen identity record keyed by ``person_id``.

    ``person_id`` always equals the storage key the record lives under.
    ``blood_group`` is only carried by health deployments and is None for
    academic ones.

    Attributes:
        person_id: Storage key, immutable once set
        govt_id: External government identifier
        name: Display name
        gender: Gender as supplied at creation
        dob: Date of birth as supplied at creation
        blood_group: Blood group (health variant only)
        current_address: Current address
        records: Ordered sub-record log
    """

    person_id: str
    govt_id: str = UNDEFINED
    name: str = UNDEFINED
    gender: str = UNDEFINED
    dob: str = UNDEFINED
    blood_group: Optional[str] = UNDEFINED
    current_address: Address = field(default_factory=Address)
    records: list[SubRecord] = field(default_factory=list)

    def find_record(self, record_id: str) -> Optional[SubRecord]:
        """Return the sub-record with ``record_id``, or None."""
        for record in self.records:
            if record.record_id == record_id:
                return record
        return None


def new_citizen(
    *,
    person_id: str,
    dob: str,
    gender: str,
    variant: RecordVariant = RecordVariant.HEALTH,
) -> Citizen:
    """Build a freshly created citizen with sentinel defaults.

    Every field is passed by name so the date of birth and gender can never be
    swapped by argument position.

    Args:
        person_id: Storage key for the new citizen
        dob: Date of birth
        gender: Gender
        variant: Deployment variant; academic citizens carry no blood group

    Returns:
        New Citizen with an empty sub-record log

    Example:
        >>> citizen = new_citizen(person_id="P1", dob="1990-01-01", gender="M")
        >>> citizen.name
        'UNDEFINED'
    """
    return Citizen(
        person_id=person_id,
        dob=dob,
        gender=gender,
        blood_group=UNDEFINED if variant is RecordVariant.HEALTH else None,
    )
