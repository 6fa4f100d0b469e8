"""Integration tests for the ledger host.

These tests drive complete invocations through LedgerHost: identity
resolution, the access matrix, record service, store codec and the MVCC
commit with conflict retry.
"""

import json
import threading

import pytest

from citizen_records.config.schema import Config, LedgerConfig
from citizen_records.host.executor import LedgerHost
from citizen_records.models.responses import InvocationStatus
from citizen_records.router.operations import InvocationMode
from citizen_records.store.registry import REGISTRY_KEY
from citizen_records.utils.exceptions import TransactionConflict

from conftest import (
    ADDRESS_ARGS,
    ALL_CALLERS,
    CITIZEN,
    DOCTOR,
    HOSPITAL_ADMIN,
    REGISTRAR,
    STRANGER,
    academic_record_args,
    health_record_args,
)

pytestmark = pytest.mark.integration


def _snapshot(ledger):
    return {key: (ledger.get(key), ledger.version(key)) for key in ledger.keys()}


# Invocations and the role attributes allowed to perform them
MUTATIONS = [
    ("setExternalID", ["P1", "GOV-1"], {"govt_admin"}),
    ("setName", ["P1", "Asha Verma"], {"govt_admin", "person"}),
    ("setBloodGroup", ["P1", "O+"], {"healthcare_admin", "person"}),
    ("setAddress", ["P1", *ADDRESS_ARGS], {"govt_admin", "person"}),
    ("create", ["P2", "2000-01-01", "F"], {"govt_admin"}),
    ("addSubRecord", health_record_args(), {"healthcare_admin", "healthcare_user"}),
    ("closeSubRecord", ["P1", "H1", "2024-01-07", "Recovered"], {"healthcare_admin", "healthcare_user"}),
    ("writeKey", ["notice", "hello"], {"govt_admin"}),
]

READS = [
    ("getRedactedEntity", ["P1"], {"person"}),
    ("getFullEntity", ["P1"], {"person"}),
    ("listAll", [], {"person"}),
]


class TestPermissionMatrix:
    """End-to-end enforcement of the access matrix."""

    @pytest.mark.parametrize("function,args,allowed", MUTATIONS)
    @pytest.mark.parametrize("role", sorted(ALL_CALLERS))
    def test_mutations(self, host_with_citizen, ledger, function, args, allowed, role):
        """Test each mutation succeeds only for its roles and leaves state untouched otherwise."""
        # Arrange
        if function == "closeSubRecord":
            seeded = host_with_citizen.invoke("addSubRecord", health_record_args(), DOCTOR)
            assert seeded.is_success, seeded.message
        before = _snapshot(ledger)

        # Act
        result = host_with_citizen.invoke(function, args, ALL_CALLERS[role])

        # Assert
        if role in allowed:
            assert result.is_success, result.message
            assert _snapshot(ledger) != before
        else:
            assert result.status is InvocationStatus.ERROR
            assert result.message == f"Permission denied. {function}"
            assert result.error_kind == "PermissionDenied"
            assert _snapshot(ledger) == before

    @pytest.mark.parametrize("function,args,allowed", READS)
    @pytest.mark.parametrize("role", sorted(ALL_CALLERS))
    def test_reads(self, host_with_citizen, function, args, allowed, role):
        """Test reads are served to citizens only."""
        result = host_with_citizen.query(function, args, ALL_CALLERS[role])
        assert result.is_success is (role in allowed)

    def test_create_registry_admin_only(self, host, ledger):
        """Test only the registry authority creates citizens."""
        # Arrange
        before = _snapshot(ledger)

        # Act
        denied = [
            host.invoke("create", ["P9", "2000-01-01", "F"], caller)
            for role, caller in ALL_CALLERS.items()
            if role != "govt_admin"
        ]

        # Assert
        assert all(r.message == "Permission denied. create" for r in denied)
        assert _snapshot(ledger) == before
        assert host.invoke("create", ["P9", "2000-01-01", "F"], REGISTRAR).is_success

    def test_permission_checked_before_existence(self, host):
        """Test a denied caller cannot probe for unknown citizens."""
        result = host.invoke("setName", ["NOBODY", "x"], DOCTOR)
        assert result.error_kind == "PermissionDenied"

    def test_open_operations(self, host_with_citizen):
        """Test open operations answer any resolved caller."""
        for caller in ALL_CALLERS.values():
            assert host_with_citizen.query("heartbeat", [], caller).payload == b"Alive!!!"
            assert host_with_citizen.query("checkUnique", ["P1"], caller).payload == b"false"
            assert host_with_citizen.query("getCredential", ["registrar"], caller).payload == (
                b"CERT-REGISTRAR"
            )

    def test_missing_identity(self, host):
        """Test callers without attested attributes are rejected."""
        result = host.query("heartbeat", [], {"role": "person"})
        assert result.error_kind == "IdentityError"
        assert "username" in result.message


class TestRecordLifecycle:
    """Complete citizen lifecycle through the host."""

    def test_health_lifecycle(self, host_with_citizen):
        """Test create, demographic updates, a visit, closing it and reading back."""
        host = host_with_citizen

        # Act
        assert host.invoke("setExternalID", ["P1", "GOV-1"], REGISTRAR).is_success
        assert host.invoke("setName", ["P1", "Asha Verma"], CITIZEN).is_success
        assert host.invoke("setBloodGroup", ["P1", "O+"], HOSPITAL_ADMIN).is_success
        assert host.invoke("setAddress", ["P1", *ADDRESS_ARGS], CITIZEN).is_success
        assert host.invoke("addSubRecord", health_record_args(), DOCTOR).is_success
        closed = host.invoke("closeSubRecord", ["P1", "H1", "2024-01-07", "Recovered"], DOCTOR)
        full = json.loads(host.query("getFullEntity", ["P1"], CITIZEN).payload)
        redacted = json.loads(host.query("getRedactedEntity", ["P1"], CITIZEN).payload)

        # Assert
        assert closed.is_success, closed.message
        assert full["name"] == "Asha Verma"
        assert full["govtid"] == "GOV-1"
        assert full["bloodgroup"] == "O+"
        assert full["currentaddress"]["city"] == "Bengaluru"
        visit = full["personahealth"][0]
        assert visit["dateofdischarge"] == "2024-01-07"
        assert visit["dischargesummary"] == "Recovered"
        assert redacted["personahealth"] == []
        assert redacted["name"] == "Asha Verma"

    def test_duplicate_create(self, host_with_citizen):
        """Test a second create for the same id is rejected."""
        result = host_with_citizen.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)
        assert result.message == "Citizen already exists"
        assert result.error_kind == "DuplicateID"
        assert host_with_citizen.registered_ids() == ["P1"]

    def test_duplicate_sub_record(self, host_with_citizen):
        """Test record ids are unique within a citizen."""
        host_with_citizen.invoke("addSubRecord", health_record_args(), DOCTOR)
        result = host_with_citizen.invoke("addSubRecord", health_record_args(), DOCTOR)
        assert result.error_kind == "DuplicateID"

    def test_not_found(self, host):
        """Test updates to unknown citizens report NotFound."""
        result = host.invoke("setName", ["NOBODY", "x"], CITIZEN)
        assert result.error_kind == "NotFound"

    def test_academic_variant(self, academic_host):
        """Test academic deployments store academic records and skip health operations."""
        # Arrange
        academic_host.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)

        # Act
        added = academic_host.invoke("addSubRecord", academic_record_args(), DOCTOR)
        blood = academic_host.invoke("setBloodGroup", ["P1", "O+"], CITIZEN)
        full = json.loads(academic_host.query("getFullEntity", ["P1"], CITIZEN).payload)

        # Assert
        assert added.is_success, added.message
        assert blood.error_kind == "UnknownOperation"
        assert "bloodgroup" not in full
        assert full["personaacademic"][0]["institutename"] == "State University"

    def test_write_and_read_key(self, host):
        """Test raw key writes by the registry authority are readable by anyone."""
        assert host.invoke("writeKey", ["notice", "hello"], REGISTRAR).is_success
        assert host.query("readKey", ["notice"], STRANGER).payload == b"hello"
        refused = host.invoke("writeKey", [REGISTRY_KEY, "{}"], REGISTRAR)
        assert refused.error_kind == "ArgumentError"

    def test_write_key_cannot_clobber_citizen(self, host_with_citizen):
        """Test raw writes never replace a registered citizen document."""
        # Act
        result = host_with_citizen.invoke("writeKey", ["P1", "garbage"], REGISTRAR)
        read = host_with_citizen.query("getFullEntity", ["P1"], CITIZEN)

        # Assert
        assert result.error_kind == "ArgumentError"
        assert read.is_success, read.message
        assert json.loads(read.payload)["personid"] == "P1"
        assert host_with_citizen.registered_ids() == ["P1"]

    def test_undefined_close_date_refused(self, host_with_citizen):
        """Test a record is closed exactly once with a real discharge date."""
        # Arrange
        host_with_citizen.invoke("addSubRecord", health_record_args(), DOCTOR)

        # Act
        sentinel = host_with_citizen.invoke("closeSubRecord", ["P1", "H1", "UNDEFINED", "first"], DOCTOR)
        closed = host_with_citizen.invoke("closeSubRecord", ["P1", "H1", "2024-02-01", "second"], DOCTOR)
        again = host_with_citizen.invoke("closeSubRecord", ["P1", "H1", "2024-03-01", "third"], DOCTOR)

        # Assert
        assert sentinel.error_kind == "ArgumentError"
        assert closed.is_success, closed.message
        assert again.error_kind == "ArgumentError"
        visit = json.loads(host_with_citizen.query("getFullEntity", ["P1"], CITIZEN).payload)["personahealth"][0]
        assert visit["dischargesummary"] == "second"


class TestTransactions:
    """Commit semantics, retry and concurrency."""

    def test_bootstrap_is_idempotent(self, host_with_citizen):
        """Test re-bootstrapping keeps registered citizens."""
        host_with_citizen.bootstrap({"alice": "CERT-ALICE"})
        assert host_with_citizen.registered_ids() == ["P1"]
        assert host_with_citizen.query("getCredential", ["alice"], CITIZEN).payload == b"CERT-ALICE"

    def test_queries_never_commit(self, host_with_citizen, ledger):
        """Test queries leave the commit count unchanged."""
        commits = ledger.commit_count
        host_with_citizen.query("listAll", [], CITIZEN)
        host_with_citizen.execute("heartbeat", [], CITIZEN, InvocationMode.QUERY)
        assert ledger.commit_count == commits

    def test_failed_invocation_discards_writes(self, host_with_citizen, ledger):
        """Test a rejected addSubRecord commits nothing."""
        before = _snapshot(ledger)
        result = host_with_citizen.invoke("addSubRecord", health_record_args("NOBODY"), DOCTOR)
        assert result.error_kind == "NotFound"
        assert _snapshot(ledger) == before

    def test_conflict_is_retried(self, host, ledger, monkeypatch):
        """Test an interleaved registry write forces one re-execution."""
        # Arrange
        original_commit = ledger.commit
        calls = []

        def interleaved_commit(tx):
            calls.append(tx)
            if len(calls) == 1:
                # Another citizen is registered between read and commit
                other = ledger.begin(REGISTRAR)
                other.put_state(REGISTRY_KEY, json.dumps({"ids": ["P0"]}).encode("utf-8"))
                original_commit(other)
            original_commit(tx)

        monkeypatch.setattr(ledger, "commit", interleaved_commit)

        # Act
        result = host.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)

        # Assert
        assert result.is_success, result.message
        assert result.attempts == 2
        assert host.registered_ids() == ["P0", "P1"]

    def test_conflict_retries_exhausted(self, host, ledger, monkeypatch):
        """Test persistent conflicts are rejected after the retry budget."""
        # Arrange
        def always_conflict(tx):
            raise TransactionConflict([REGISTRY_KEY])

        monkeypatch.setattr(ledger, "commit", always_conflict)

        # Act
        result = host.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)

        # Assert
        assert result.status is InvocationStatus.ERROR
        assert result.error_kind == "TransactionConflict"
        assert result.attempts == host.max_commit_retries + 1

    def test_concurrent_creates_all_registered(self, host, ledger):
        """Test concurrent creates each land in the registry exactly once."""
        # Arrange
        concurrent_host = LedgerHost(ledger, host.router, max_commit_retries=100)
        person_ids = [f"P{i}" for i in range(8)]
        results = {}

        def create(person_id):
            results[person_id] = concurrent_host.invoke(
                "create", [person_id, "1990-01-01", "M"], REGISTRAR
            )

        threads = [threading.Thread(target=create, args=(pid,)) for pid in person_ids]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert all(r.is_success for r in results.values())
        registered = concurrent_host.registered_ids()
        assert sorted(registered) == sorted(person_ids)
        assert len(registered) == len(set(registered))


class TestFileLedger:
    """Persistence of the file-backed ledger."""

    def test_state_survives_restart(self, tmp_path):
        """Test a second host over the same state file sees committed citizens."""
        # Arrange
        config = Config(ledger=LedgerConfig(state_file=tmp_path / "state" / "ledger.json"))
        first = LedgerHost.from_config(config)
        first.bootstrap({"registrar": "CERT-REGISTRAR"})
        first.invoke("create", ["P1", "1990-01-01", "M"], REGISTRAR)
        first.invoke("writeKey", ["blob", "été"], REGISTRAR)

        # Act
        second = LedgerHost.from_config(config)

        # Assert
        assert second.registered_ids() == ["P1"]
        full = json.loads(second.query("getFullEntity", ["P1"], CITIZEN).payload)
        assert full["dob"] == "1990-01-01"
        assert second.query("readKey", ["blob"], CITIZEN).payload == "été".encode("utf-8")

    def test_two_hosts_interleave(self, tmp_path):
        """Test two hosts on one file see each other's commits."""
        config = Config(ledger=LedgerConfig(state_file=tmp_path / "ledger.json"))
        first = LedgerHost.from_config(config)
        first.bootstrap()
        second = LedgerHost.from_config(config)

        first.invoke("create", ["P1", "d", "g"], REGISTRAR)
        second.invoke("create", ["P2", "d", "g"], REGISTRAR)

        assert first.registered_ids() == ["P1", "P2"]
