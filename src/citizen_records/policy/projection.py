"""Read projections of a citizen.

A view is an explicit allow-list of Citizen attributes. Projection copies only
the listed attributes into a fresh Citizen; anything not listed keeps its
default, so an attribute added to the model later is not exposed by a view
until it is named here.
"""

import copy
from dataclasses import fields

from citizen_records.models.citizen import Citizen

REDACTED_VIEW: frozenset[str] = frozenset(
    {
        "person_id",
        "govt_id",
        "name",
        "gender",
        "dob",
        "blood_group",
        "current_address",
    }
)

FULL_VIEW: frozenset[str] = REDACTED_VIEW | {"records"}


def project(citizen: Citizen, view: frozenset[str]) -> Citizen:
    """Return a copy of ``citizen`` exposing only the attributes in ``view``.

    Args:
        citizen: Loaded citizen
        view: Attribute allow-list; must include ``person_id``

    Returns:
        New Citizen sharing no mutable state with ``citizen``

    Example:
        >>> redacted = project(citizen, REDACTED_VIEW)
        >>> redacted.records
        []
    """
    exposed = {
        f.name: copy.deepcopy(getattr(citizen, f.name))
        for f in fields(citizen)
        if f.name in view
    }
    return Citizen(**exposed)
