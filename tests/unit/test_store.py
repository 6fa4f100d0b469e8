"""Unit tests for the record store and the citizen id registry."""

import pytest

from citizen_records.models.citizen import RecordVariant, new_citizen
from citizen_records.store.record_store import RecordStore
from citizen_records.store.registry import REGISTRY_KEY, Registry, encode_registry
from citizen_records.utils.exceptions import (
    CorruptRecord,
    DuplicateID,
    NotFound,
    StoreError,
)


class _FailingTransaction:
    def get_state(self, key):
        raise RuntimeError("peer unavailable")

    def put_state(self, key, value):
        raise RuntimeError("peer unavailable")

    def get_caller_attribute(self, name):
        return "x"


@pytest.fixture
def store(ledger):
    return RecordStore(ledger.begin(), RecordVariant.HEALTH)


class TestRecordStore:
    """Tests for raw and entity access."""

    def test_get_missing_raises_not_found(self, store):
        """Test a never-written key raises NotFound."""
        with pytest.raises(NotFound):
            store.get("nope")

    def test_put_then_get(self, store):
        """Test raw bytes round trip within the transaction."""
        store.put("k", b"v")
        assert store.get("k") == b"v"
        assert store.exists("k")

    def test_save_and_load_entity(self, store):
        """Test a citizen is stored under its own person id."""
        # Arrange
        citizen = new_citizen(person_id="P1", dob="1990-01-01", gender="M")

        # Act
        store.save_entity(citizen)

        # Assert
        assert store.load_entity("P1") == citizen

    def test_load_missing_entity(self, store):
        """Test loading an uncreated citizen raises NotFound."""
        with pytest.raises(NotFound, match="Error retrieving person with ID = P9"):
            store.load_entity("P9")

    def test_load_corrupt_entity(self, store):
        """Test undecodable bytes raise CorruptRecord, not NotFound."""
        store.put("P1", b"garbage")
        with pytest.raises(CorruptRecord):
            store.load_entity("P1")

    def test_ledger_failures_become_store_errors(self):
        """Test underlying get/put failures surface as StoreError."""
        store = RecordStore(_FailingTransaction(), RecordVariant.HEALTH)
        with pytest.raises(StoreError, match="peer unavailable"):
            store.get("k")
        with pytest.raises(StoreError, match="peer unavailable"):
            store.put("k", b"v")


class TestRegistry:
    """Tests for the append-only id registry."""

    def test_missing_registry_reads_empty(self, store):
        """Test a never-bootstrapped ledger has an empty registry."""
        assert Registry(store).list() == []

    def test_null_ids_read_empty(self, store):
        """Test a bootstrap document with null ids reads as empty."""
        store.put(REGISTRY_KEY, b'{"ids": null}')
        assert Registry(store).list() == []

    def test_register_preserves_order(self, store):
        """Test ids are listed in registration order."""
        # Arrange
        registry = Registry(store)
        store.put(REGISTRY_KEY, encode_registry([]))

        # Act
        for person_id in ["P3", "P1", "P2"]:
            registry.register(person_id)

        # Assert
        assert registry.list() == ["P3", "P1", "P2"]
        assert registry.contains("P1")
        assert not registry.contains("P4")

    def test_register_duplicate(self, store):
        """Test registering an id twice raises DuplicateID."""
        registry = Registry(store)
        registry.register("P1")
        with pytest.raises(DuplicateID):
            registry.register("P1")
        assert registry.list() == ["P1"]

    @pytest.mark.parametrize(
        "document",
        [b"not json", b"[]", b'{"ids": "P1"}', b'{"ids": [1, 2]}'],
    )
    def test_corrupt_registry(self, store, document):
        """Test malformed registry documents raise CorruptRecord."""
        store.put(REGISTRY_KEY, document)
        with pytest.raises(CorruptRecord, match="Corrupt ID_Holder record"):
            Registry(store).list()
