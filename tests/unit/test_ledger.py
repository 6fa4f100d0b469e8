"""Unit tests for the in-memory and file-backed ledgers."""

import json

import pytest

from citizen_records.ledger.base import MissingAttributeError
from citizen_records.ledger.file_ledger import FileLedger
from citizen_records.ledger.memory import MemoryLedger
from citizen_records.utils.exceptions import StoreError, TransactionConflict


class TestMemoryTransaction:
    """Tests for transaction read/write behaviour."""

    def test_absent_key_reads_none(self, ledger):
        """Test reading a never-written key."""
        tx = ledger.begin()
        assert tx.get_state("missing") is None
        assert tx.read_set == {"missing": 0}

    def test_read_your_writes(self, ledger):
        """Test staged writes are visible inside the transaction only."""
        # Arrange
        tx = ledger.begin()

        # Act
        tx.put_state("k", b"v")

        # Assert
        assert tx.get_state("k") == b"v"
        assert ledger.get("k") is None

    def test_put_requires_bytes(self, ledger):
        """Test non-bytes values are rejected."""
        tx = ledger.begin()
        with pytest.raises(StoreError):
            tx.put_state("k", "text")

    def test_put_requires_key(self, ledger):
        """Test empty keys are rejected."""
        tx = ledger.begin()
        with pytest.raises(StoreError):
            tx.put_state("", b"v")

    def test_caller_attributes(self, ledger):
        """Test attested attributes are exposed and missing ones raise."""
        tx = ledger.begin({"username": "alice"})
        assert tx.get_caller_attribute("username") == "alice"
        with pytest.raises(MissingAttributeError):
            tx.get_caller_attribute("role")


class TestMemoryLedgerCommit:
    """Tests for MVCC commit validation."""

    def test_commit_applies_writes_and_bumps_versions(self, ledger):
        """Test a commit is visible and versions start at 1."""
        # Arrange
        tx = ledger.begin()
        tx.put_state("a", b"1")
        tx.put_state("b", b"2")

        # Act
        ledger.commit(tx)

        # Assert
        assert ledger.get("a") == b"1"
        assert ledger.version("a") == 1
        assert ledger.version("b") == 1
        assert list(ledger.keys()) == ["a", "b"]
        assert ledger.commit_count == 1

    def test_discarded_transaction_writes_nothing(self, ledger):
        """Test an uncommitted transaction leaves no trace."""
        tx = ledger.begin()
        tx.put_state("a", b"1")
        assert ledger.get("a") is None
        assert ledger.version("a") == 0

    def test_stale_read_conflicts(self, ledger):
        """Test a lost update is detected instead of overwriting."""
        # Arrange
        seed = ledger.begin()
        seed.put_state("index", b"[]")
        ledger.commit(seed)

        first = ledger.begin()
        second = ledger.begin()
        first.get_state("index")
        second.get_state("index")
        first.put_state("index", b"[1]")
        second.put_state("index", b"[2]")

        # Act
        ledger.commit(first)
        with pytest.raises(TransactionConflict) as exc_info:
            ledger.commit(second)

        # Assert
        assert exc_info.value.keys == ["index"]
        assert ledger.get("index") == b"[1]"
        assert ledger.version("index") == 2

    def test_conflicting_transaction_applies_no_writes(self, ledger):
        """Test a rejected commit applies none of its write-set."""
        # Arrange
        tx = ledger.begin()
        tx.get_state("index")
        tx.put_state("index", b"[2]")
        tx.put_state("P2", b"{}")

        other = ledger.begin()
        other.put_state("index", b"[1]")
        ledger.commit(other)

        # Act & Assert
        with pytest.raises(TransactionConflict):
            ledger.commit(tx)
        assert ledger.get("P2") is None

    def test_absent_read_conflicts_with_concurrent_create(self, ledger):
        """Test reading an absent key conflicts with a concurrent insert."""
        # Arrange
        tx = ledger.begin()
        assert tx.get_state("P1") is None
        tx.put_state("P1", b"mine")

        other = ledger.begin()
        other.put_state("P1", b"theirs")
        ledger.commit(other)

        # Act & Assert
        with pytest.raises(TransactionConflict):
            ledger.commit(tx)

    def test_blind_writes_do_not_conflict(self, ledger):
        """Test write-only transactions always commit."""
        first = ledger.begin()
        second = ledger.begin()
        first.put_state("k", b"1")
        second.put_state("k", b"2")
        ledger.commit(first)
        ledger.commit(second)
        assert ledger.get("k") == b"2"


class TestFileLedger:
    """Tests for the JSON-file persisted ledger."""

    def test_state_persists_across_instances(self, tmp_path):
        """Test committed state is reloaded by a new instance."""
        # Arrange
        path = tmp_path / "ledger.json"
        ledger = FileLedger(path)
        tx = ledger.begin()
        tx.put_state("k", b"\x00\xffraw")
        ledger.commit(tx)

        # Act
        reopened = FileLedger(path)

        # Assert
        assert reopened.get("k") == b"\x00\xffraw"
        assert reopened.version("k") == 1

    def test_file_format(self, tmp_path):
        """Test the state document holds versioned base64 values."""
        # Arrange
        path = tmp_path / "ledger.json"
        ledger = FileLedger(path)
        tx = ledger.begin()
        tx.put_state("k", b"v")

        # Act
        ledger.commit(tx)

        # Assert
        document = json.loads(path.read_text())
        assert document["format"] == 1
        assert document["keys"]["k"] == {"version": 1, "value": "dg=="}
        assert not list(tmp_path.glob("*.tmp"))

    def test_missing_file_is_empty(self, tmp_path):
        """Test a ledger without a state file starts empty."""
        ledger = FileLedger(tmp_path / "nested" / "ledger.json")
        assert list(ledger.keys()) == []

    def test_corrupt_file_raises_store_error(self, tmp_path):
        """Test an unreadable state file raises StoreError."""
        path = tmp_path / "ledger.json"
        path.write_text("{not json")
        with pytest.raises(StoreError, match="Unable to read ledger state"):
            FileLedger(path)

    def test_commit_sees_other_instance_writes(self, tmp_path):
        """Test two instances on one file detect each other's commits."""
        # Arrange
        path = tmp_path / "ledger.json"
        first = FileLedger(path)
        second = FileLedger(path)

        tx_a = first.begin()
        tx_b = second.begin()
        tx_a.get_state("index")
        tx_b.get_state("index")
        tx_a.put_state("index", b"a")
        tx_b.put_state("index", b"b")

        # Act
        first.commit(tx_a)

        # Assert
        with pytest.raises(TransactionConflict):
            second.commit(tx_b)
        assert FileLedger(path).get("index") == b"a"

    def test_file_ledger_is_memory_ledger(self, tmp_path):
        """Test FileLedger can stand wherever a MemoryLedger is expected."""
        assert isinstance(FileLedger(tmp_path / "l.json"), MemoryLedger)
