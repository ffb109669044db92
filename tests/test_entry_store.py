"""Unit tests for ledger/store.py -- EntryStore CRUD and at-rest encryption.

Covers:
- create/get round trip returns plaintext
- description and value are stored as cipher envelopes, never in clear
- owner isolation on every read and write
- list filters on clear-text columns
- update re-encrypts, delete reports whether a row went away
- a corrupted envelope in the database raises instead of returning garbage
"""

import pytest
from sqlalchemy import text

from core.errors import DecryptionFailedError, MalformedEnvelopeError, StoreUnavailableError
from ledger.models import Entry
from ledger.store import EntryStore


def _entry(owner: str = "alice", **overrides) -> Entry:
    fields = {
        "day": "03",
        "month": "11",
        "year": "2024",
        "entry": "expense",
        "description": "Weekly groceries",
        "value": "54.20",
    }
    fields.update(overrides)
    return Entry(owner=owner, **fields)


def _raw_rows(store: EntryStore) -> list:
    with store._engine.connect() as conn:
        return conn.execute(text("SELECT id, description, value FROM entries")).fetchall()


class TestCreateAndRead:
    def test_create_then_get(self, entry_store):
        created = entry_store.create_entry(_entry())
        assert created.id is not None
        assert created.created_at
        fetched = entry_store.get_entry(created.id, "alice")
        assert fetched == created

    def test_content_is_encrypted_at_rest(self, entry_store, cipher):
        entry_store.create_entry(_entry())
        (_, description, value) = _raw_rows(entry_store)[0]
        assert "groceries" not in description
        assert "54.20" not in value
        assert cipher.decrypt(description) == "Weekly groceries"
        assert cipher.decrypt(value) == "54.20"

    def test_get_missing_returns_none(self, entry_store):
        assert entry_store.get_entry(999, "alice") is None


class TestOwnership:
    def test_other_owner_cannot_read(self, entry_store):
        created = entry_store.create_entry(_entry("alice"))
        assert entry_store.get_entry(created.id, "bob") is None
        assert entry_store.list_entries("bob") == []

    def test_other_owner_cannot_update_or_delete(self, entry_store):
        created = entry_store.create_entry(_entry("alice"))
        assert entry_store.update_entry(created.id, "bob", value="0") is None
        assert entry_store.delete_entry(created.id, "bob") is False
        assert entry_store.get_entry(created.id, "alice").value == "54.20"


class TestList:
    def test_filters_on_clear_columns(self, entry_store):
        entry_store.create_entry(_entry(month="10"))
        entry_store.create_entry(_entry(month="11", entry="income", description="Salary", value="2000"))
        entry_store.create_entry(_entry(month="11"))

        november = entry_store.list_entries("alice", month="11")
        assert len(november) == 2
        income = entry_store.list_entries("alice", month="11", entry="income")
        assert [e.description for e in income] == ["Salary"]

    def test_none_filters_are_ignored(self, entry_store):
        entry_store.create_entry(_entry())
        assert len(entry_store.list_entries("alice", day=None, year=None)) == 1

    def test_results_ordered_by_id(self, entry_store):
        ids = [entry_store.create_entry(_entry(day=str(d))).id for d in (5, 1, 3)]
        assert [e.id for e in entry_store.list_entries("alice")] == ids

    def test_unknown_filter(self, entry_store):
        with pytest.raises(ValueError):
            entry_store.list_entries("alice", description="groceries")


class TestUpdateAndDelete:
    def test_update_changes_fields_and_reencrypts(self, entry_store):
        created = entry_store.create_entry(_entry())
        before = _raw_rows(entry_store)[0]
        updated = entry_store.update_entry(created.id, "alice", description="Groceries and wine", day="04")
        assert updated.description == "Groceries and wine"
        assert updated.day == "04"
        assert updated.value == "54.20"
        after = _raw_rows(entry_store)[0]
        assert after.description != before.description
        assert "wine" not in after.description

    def test_update_unknown_field(self, entry_store):
        created = entry_store.create_entry(_entry())
        with pytest.raises(ValueError):
            entry_store.update_entry(created.id, "alice", owner="bob")

    def test_delete(self, entry_store):
        created = entry_store.create_entry(_entry())
        assert entry_store.delete_entry(created.id, "alice") is True
        assert entry_store.get_entry(created.id, "alice") is None
        assert entry_store.delete_entry(created.id, "alice") is False


class TestCorruption:
    def _corrupt(self, store: EntryStore, entry_id: int, description: str) -> None:
        with store._engine.connect() as conn:
            conn.execute(
                text("UPDATE entries SET description = :d WHERE id = :id"),
                {"d": description, "id": entry_id},
            )
            conn.commit()

    def test_malformed_envelope_raises(self, entry_store):
        created = entry_store.create_entry(_entry())
        self._corrupt(entry_store, created.id, "plain text that was never encrypted")
        with pytest.raises(MalformedEnvelopeError):
            entry_store.get_entry(created.id, "alice")

    def test_corrupted_ciphertext_raises(self, entry_store):
        created = entry_store.create_entry(_entry())
        envelope = _raw_rows(entry_store)[0].description
        self._corrupt(entry_store, created.id, envelope[:-2])
        with pytest.raises(DecryptionFailedError):
            entry_store.get_entry(created.id, "alice")


def test_unopened_store_is_unavailable(cipher):
    store = EntryStore("sqlite:///:memory:", cipher)
    with pytest.raises(StoreUnavailableError):
        store.list_entries("alice")
