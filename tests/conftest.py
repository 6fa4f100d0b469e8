"""
Shared pytest configuration and fixtures.

This module provides fixtures and helpers used across the unit and integration
suites: role attribute sets, a policy, in-memory ledgers and ledger hosts, and
argument lists for the multi-argument invocations.
"""

import pytest

from citizen_records.config.schema import Config, LedgerConfig, RolesConfig
from citizen_records.host.executor import LedgerHost
from citizen_records.ledger.memory import MemoryLedger
from citizen_records.models.citizen import RecordVariant
from citizen_records.policy.access import AccessPolicy

REGISTRAR = {"username": "registrar", "role": "govt_admin"}
CITIZEN = {"username": "P1", "role": "person"}
DOCTOR = {"username": "dr-rao", "role": "healthcare_user"}
HOSPITAL_ADMIN = {"username": "admin-1", "role": "healthcare_admin"}
STRANGER = {"username": "mallory", "role": "janitor"}

ALL_CALLERS = {
    "govt_admin": REGISTRAR,
    "person": CITIZEN,
    "healthcare_user": DOCTOR,
    "healthcare_admin": HOSPITAL_ADMIN,
    "janitor": STRANGER,
}

ADDRESS_ARGS = ["12 Park Rd", "Block B", "Indiranagar", "Bengaluru", "KA", "560038"]


def health_record_args(person_id: str = "P1", record_id: str = "H1") -> list[str]:
    """Arguments for addSubRecord in a health deployment."""
    return [
        person_id,
        record_id,
        "Dr. Rao",
        "City Clinic",
        *ADDRESS_ARGS,
        "OPD",
        "Fever",
        "2024-01-05",
        "2024-01-05",
    ]


def academic_record_args(person_id: str = "P1", record_id: str = "A1") -> list[str]:
    """Arguments for addSubRecord in an academic deployment."""
    return [
        person_id,
        record_id,
        "State University",
        *ADDRESS_ARGS,
        "Engineering",
        "B.Tech",
        "Computer Science",
        "A",
        "2012-05-30",
    ]


@pytest.fixture
def roles() -> RolesConfig:
    """Default attestation role mapping."""
    return RolesConfig()


@pytest.fixture
def policy(roles: RolesConfig) -> AccessPolicy:
    """Access policy over the default role mapping."""
    return AccessPolicy(roles)


@pytest.fixture
def memory_config() -> Config:
    """Configuration for an in-memory health deployment."""
    return Config(ledger=LedgerConfig(state_file=None))


@pytest.fixture
def ledger() -> MemoryLedger:
    """Fresh in-memory ledger."""
    return MemoryLedger()


@pytest.fixture
def host(memory_config: Config, ledger: MemoryLedger) -> LedgerHost:
    """Bootstrapped health-variant ledger host over the ``ledger`` fixture."""
    ledger_host = LedgerHost.from_config(memory_config, ledger=ledger)
    ledger_host.bootstrap({"registrar": "CERT-REGISTRAR"})
    return ledger_host


@pytest.fixture
def academic_host() -> LedgerHost:
    """Bootstrapped academic-variant ledger host."""
    config = Config(
        ledger=LedgerConfig(state_file=None, variant=RecordVariant.ACADEMIC)
    )
    ledger_host = LedgerHost.from_config(config)
    ledger_host.bootstrap()
    return ledger_host


@pytest.fixture
def host_with_citizen(host: LedgerHost) -> LedgerHost:
    """Health host holding citizen P1."""
    result = host.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)
    assert result.is_success, result.message
    return host
