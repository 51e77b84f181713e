"""Tests for the audit logger."""

from uuid import UUID

from alumni_ledger.audit import AuditLogger, create_correlation_id
from alumni_ledger.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity


class FailingStorage:
    """Audit storage whose writes always fail."""

    def append_event(self, event):
        raise RuntimeError("sheet unavailable")


class TestAuditLogger:
    """Tests for local logging and persistence."""

    def test_without_storage(self):
        """Test that logging without storage succeeds."""
        logger = AuditLogger()
        assert logger.log(AuditEventBuilder.entry_deleted(entry_id=1)) is True

    def test_persists_with_default_actor(self, store):
        """Test that events are stored and stamped with the session actor."""
        logger = AuditLogger(store, actor="Alice Admin")
        logger.log_entry_added(
            entry_id=3,
            classmate_name="Jane Doe",
            amount="50.00",
            payment_type="Manual",
        )
        event = store.get_recent_events()[0]
        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.actor == "Alice Admin"

    def test_explicit_actor_kept(self, store):
        """Test that an event's own actor is not overwritten."""
        AuditLogger(store, actor="system").log(
            AuditEventBuilder.ledger_cleared(removed_count=4, actor="Alice Admin")
        )
        assert store.get_recent_events()[0].actor == "Alice Admin"

    def test_storage_failure_not_raised(self):
        """Test that a failing audit backend never breaks the caller."""
        logger = AuditLogger(FailingStorage())
        assert logger.log(AuditEventBuilder.entry_deleted(entry_id=1)) is False

    def test_correlated_events(self, store):
        """Test that one correlation id ties events together."""
        logger = AuditLogger(store)
        correlation_id = create_correlation_id()
        logger.log_entry_deleted(4, correlation_id=correlation_id)
        logger.log_duplicates_deleted([4], correlation_id=correlation_id)

        events = store.get_events_by_correlation_id(correlation_id)
        assert isinstance(correlation_id, UUID)
        assert [e.event_type for e in events] == [
            AuditEventType.ENTRY_DELETED,
            AuditEventType.DUPLICATES_DELETED,
        ]

    def test_error_events(self, store):
        """Test the severity of error events."""
        logger = AuditLogger(store)
        logger.log_error("import_storage_error", "disk full")
        logger.log_external_service_error("gemini", "quota exceeded")
        severities = {e.event_type: e.severity for e in store.get_recent_events()}
        assert severities[AuditEventType.SYSTEM_ERROR] == AuditSeverity.ERROR
        assert severities[AuditEventType.EXTERNAL_SERVICE_ERROR] == AuditSeverity.ERROR

    def test_import_failed_is_error(self, store):
        """Test that an unreadable import is recorded as an error."""
        AuditLogger(store).log_import_failed("bad.xlsx", "not a workbook", create_correlation_id())
        event = store.get_recent_events()[0]
        assert event.severity == AuditSeverity.ERROR
        assert event.details["source_name"] == "bad.xlsx"
