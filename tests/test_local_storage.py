"""Tests for the JSON document store."""

import json
from datetime import datetime
from uuid import uuid4

import pytest

from alumni_ledger.models.audit import AuditEventBuilder
from alumni_ledger.models.directory import ClassmateStatus
from alumni_ledger.services.storage import (
    DuplicateError,
    LocalStore,
    NotFoundError,
    StorageError,
)


class TestLedgerStorage:
    """Tests for ledger entries."""

    def test_append_assigns_increasing_ids(self, store, make_candidate):
        """Test that ids start at 1 and go up."""
        first = store.append(make_candidate())
        second = store.append(make_candidate())
        assert (first.id, second.id) == (1, 2)

    def test_ids_never_reused_after_delete(self, store, make_candidate):
        """Test that removing the newest entry does not free its id."""
        store.append(make_candidate())
        second = store.append(make_candidate())
        assert store.remove(second.id) is True
        assert store.append(make_candidate()).id == 3

    def test_ids_never_reused_after_clear(self, store, make_candidate):
        """Test that clearing the ledger keeps the sequence."""
        store.append(make_candidate())
        assert store.clear() == 1
        assert store.append(make_candidate()).id == 2

    def test_remove_missing_returns_false(self, store):
        """Test removing an unknown id."""
        assert store.remove(99) is False

    def test_update_missing_raises(self, store, make_entry):
        """Test updating an unknown id."""
        with pytest.raises(NotFoundError):
            store.update(make_entry(99))

    def test_update_replaces_entry(self, store, make_candidate):
        """Test that updates are visible to later reads."""
        entry = store.append(make_candidate())
        store.update(entry.model_copy(update={"description": "Corrected"}))
        assert store.get(entry.id).description == "Corrected"

    def test_list_keeps_insertion_order(self, store, make_candidate):
        """Test that entries come back in the order they were added."""
        for name in ("A", "B", "C"):
            store.append(make_candidate(classmate_name=name))
        assert [e.classmate_name for e in store.list_entries()] == ["A", "B", "C"]


class TestPersistence:
    """Tests for the on-disk document."""

    def test_round_trip_through_disk(self, tmp_path, make_candidate):
        """Test that a reopened store sees the same data and sequences."""
        path = tmp_path / "data" / "ledger.json"
        store = LocalStore(path)
        entry = store.append(make_candidate(amount="12.34"))
        store.remove(entry.id)
        store.append(make_candidate(amount="56.78"))
        store.add_classmate("Jane Doe")

        reopened = LocalStore(path)
        entries = reopened.list_entries()
        assert [e.id for e in entries] == [2]
        assert str(entries[0].amount) == "56.78"
        assert reopened.list_classmates()[0].name == "Jane Doe"
        assert reopened.append(make_candidate()).id == 3

    def test_document_shape(self, tmp_path, make_candidate):
        """Test the top-level collections of the JSON document."""
        path = tmp_path / "ledger.json"
        LocalStore(path).append(make_candidate())
        document = json.loads(path.read_text())
        assert set(document) >= {"transactions", "announcements", "classmates", "audit", "sequences"}

    def test_corrupt_document_raises(self, tmp_path):
        """Test that an unreadable document is a storage error."""
        path = tmp_path / "ledger.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            LocalStore(path)


class TestDirectoryStorage:
    """Tests for classmates and announcements."""

    def test_classmate_crud(self, store):
        """Test add, update and remove of a profile."""
        classmate = store.add_classmate("Jane Doe", email="jane@example.com")
        store.update_classmate(classmate.model_copy(update={"status": ClassmateStatus.INACTIVE}))
        assert store.get_classmate(classmate.id).status == ClassmateStatus.INACTIVE
        assert store.remove_classmate(classmate.id) is True
        assert store.get_classmate(classmate.id) is None

    def test_duplicate_email_refused(self, store):
        """Test that two profiles cannot share a sign-in email."""
        store.add_classmate("Jane Doe", email="jane@example.com")
        with pytest.raises(DuplicateError):
            store.add_classmate("Jane D.", email="JANE@example.com")

    def test_announcements(self, store):
        """Test posting and removing announcements."""
        posted = store.add_announcement("Picnic", "Saturday at noon", datetime(2024, 6, 1))
        assert store.list_announcements()[0].title == "Picnic"
        assert store.remove_announcement(posted.id) is True
        assert store.list_announcements() == []


class TestAuditStorage:
    """Tests for the audit trail."""

    def test_events_by_correlation_and_entity(self, store):
        """Test the audit query methods."""
        correlation_id = uuid4()
        store.append_event(AuditEventBuilder.entry_added(
            entry_id=5,
            classmate_name="Jane Doe",
            amount="50.00",
            payment_type="Manual",
            correlation_id=correlation_id,
        ))
        store.append_event(AuditEventBuilder.entry_deleted(entry_id=6))

        assert len(store.get_events_by_correlation_id(correlation_id)) == 1
        assert len(store.get_events_by_entity("entry", "5")) == 1
        assert len(store.get_recent_events(limit=10)) == 2
