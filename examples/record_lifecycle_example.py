"""Citizen record lifecycle examples.

This module walks through the life of one citizen on an in-memory ledger:
creation by the registry authority, self-service updates, a health visit
opened and closed by healthcare staff, and the redacted and full views.
"""

import json
import logging

from citizen_records.config.schema import Config, LedgerConfig
from citizen_records.host.executor import LedgerHost
from citizen_records.router.operations import InvocationMode

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

REGISTRAR = {"username": "registrar", "role": "govt_admin"}
CITIZEN = {"username": "P100", "role": "person"}
DOCTOR = {"username": "dr-rao", "role": "healthcare_user"}

CLINIC_ADDRESS = ["12 Park Rd", "Block B", "Indiranagar", "Bengaluru", "KA", "560038"]


def example_1_create_and_update(host: LedgerHost) -> None:
    """Example 1: Registry authority creates a citizen, citizen fills details."""
    print("=" * 80)
    print("EXAMPLE 1: Create and update a citizen")
    print("=" * 80)

    result = host.invoke("create", ["P100", "1990-04-12", "F"], REGISTRAR)
    print(f"create -> {result.status.value}")

    host.invoke("setExternalID", ["P100", "GOV-778812"], REGISTRAR)
    host.invoke("setName", ["P100", "Asha Verma"], CITIZEN)
    host.invoke("setBloodGroup", ["P100", "O+"], CITIZEN)
    host.invoke(
        "setAddress",
        ["P100", "4 Lake View", "Flat 2", "Koramangala", "Bengaluru", "KA", "560034"],
        CITIZEN,
    )

    view = host.query("getRedactedEntity", ["P100"], CITIZEN)
    print(json.dumps(json.loads(view.payload_text()), indent=2))
    print()


def example_2_health_visit(host: LedgerHost) -> None:
    """Example 2: Healthcare staff open and close a visit."""
    print("=" * 80)
    print("EXAMPLE 2: Open and close a health visit")
    print("=" * 80)

    host.invoke(
        "addSubRecord",
        ["P100", "H-1", "Dr. Rao", "City Clinic", *CLINIC_ADDRESS,
         "OPD", "Fever", "2024-01-05", "2024-01-05"],
        DOCTOR,
    )
    host.invoke("closeSubRecord", ["P100", "H-1", "2024-01-07", "Recovered"], DOCTOR)

    full = json.loads(host.query("getFullEntity", ["P100"], CITIZEN).payload_text())
    for record in full["personahealth"]:
        print(f"  {record['healthrecordid']}: discharged {record['dateofdischarge']}")
    print()


def example_3_rejections(host: LedgerHost) -> None:
    """Example 3: Rejected invocations commit nothing."""
    print("=" * 80)
    print("EXAMPLE 3: Rejected invocations")
    print("=" * 80)

    for function, args, attributes in [
        ("create", ["P100", "1990-04-12", "F"], REGISTRAR),
        ("setName", ["P100", "Someone Else"], DOCTOR),
        ("getFullEntity", ["P100"], REGISTRAR),
    ]:
        result = host.execute(function, args, attributes, _mode(function))
        print(f"  {function} as {attributes['role']}: {result.error_kind} - {result.message}")

    unique = host.query("checkUnique", ["P100"], CITIZEN)
    print(f"  checkUnique P100: {unique.payload_text()} ({unique.message})")
    print()


def _mode(function: str) -> InvocationMode:
    return InvocationMode.QUERY if function.startswith("get") else InvocationMode.INVOKE


def main():
    host = LedgerHost.from_config(Config(ledger=LedgerConfig(state_file=None)))
    host.bootstrap({"registrar": "-----BEGIN CERTIFICATE-----..."})

    example_1_create_and_update(host)
    example_2_health_visit(host)
    example_3_rejections(host)

    print(f"Registered ids: {host.registered_ids()}")


if __name__ == "__main__":
    main()
