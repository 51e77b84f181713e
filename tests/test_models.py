"""
Tests for Alumni Ledger

Test strategy:
1. Unit tests for individual components (models, normalizer, reconciler)
2. Integration tests for flows (with an in-memory store)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from alumni_ledger.config import AppSettings, validate_all_settings
from alumni_ledger.models.ledger import (
    DeletionDecision,
    DeletionRejection,
    DuplicateGroup,
    DuplicateKey,
    ImportResult,
    LedgerEntry,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
    ReportFilter,
    ValidationIssue,
    ValidationResult,
    YearlyTotals,
)
from alumni_ledger.models.directory import (
    Classmate,
    SessionContext,
    User,
    UserRole,
)
from alumni_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for ledger-related Pydantic models."""

    def test_candidate_creation(self):
        """Test LedgerEntryCandidate model creation."""
        candidate = LedgerEntryCandidate(
            date=date(2024, 1, 1),
            description="Dues - Imported",
            category=PaymentCategory.DUES,
            amount=Decimal("25.00"),
            classmate_name="Jane Doe",
            payment_type=PaymentType.IMPORTED,
        )
        assert candidate.classmate_name == "Jane Doe"
        assert candidate.transaction_id is None

    def test_candidate_strips_whitespace(self):
        """Test that whitespace is stripped from the classmate name."""
        candidate = LedgerEntryCandidate(
            date=date(2024, 1, 1),
            category=PaymentCategory.DUES,
            amount=Decimal("25"),
            classmate_name="  Jane Doe  ",
            payment_type=PaymentType.MANUAL,
        )
        assert candidate.classmate_name == "Jane Doe"

    def test_blank_transaction_id_becomes_none(self):
        """Test that a whitespace-only transaction id is treated as absent."""
        candidate = LedgerEntryCandidate(
            date=date(2024, 1, 1),
            category=PaymentCategory.DUES,
            amount=Decimal("25"),
            classmate_name="Jane Doe",
            payment_type=PaymentType.MANUAL,
            transaction_id="   ",
        )
        assert candidate.transaction_id is None

    def test_non_finite_amount_rejected(self):
        """Test that NaN amounts are rejected."""
        with pytest.raises(ValueError, match="finite"):
            LedgerEntryCandidate(
                date=date(2024, 1, 1),
                category=PaymentCategory.DUES,
                amount=Decimal("NaN"),
                classmate_name="Jane Doe",
                payment_type=PaymentType.MANUAL,
            )

    def test_unknown_category_rejected(self):
        """Test that categories outside the enumeration are rejected."""
        with pytest.raises(ValueError):
            LedgerEntryCandidate(
                date=date(2024, 1, 1),
                category="Donation",
                amount=Decimal("25"),
                classmate_name="Jane Doe",
                payment_type=PaymentType.MANUAL,
            )

    def test_entry_round_trips_through_candidate(self, make_entry):
        """Test from_candidate/to_candidate keep every field but the id."""
        entry = make_entry(7)
        rebuilt = LedgerEntry.from_candidate(7, entry.to_candidate())
        assert rebuilt == entry

    def test_entry_id_must_be_positive(self, make_candidate):
        """Test that ids start at 1."""
        with pytest.raises(ValueError):
            LedgerEntry.from_candidate(0, make_candidate())

    def test_import_result_counts(self, make_candidate):
        """Test accepted_count and total_rows."""
        result = ImportResult(candidates=[make_candidate()], skipped_count=2)
        assert result.accepted_count == 1
        assert result.total_rows == 3


class TestCategoryLookup:
    """Tests for the closed category enumeration."""

    def test_lookup_is_case_insensitive(self):
        """Test that labels match regardless of case and padding."""
        assert PaymentCategory.lookup(" bank maint fee ") == PaymentCategory.BANK_MAINT_FEE
        assert PaymentCategory.lookup("PICNIC") == PaymentCategory.PICNIC

    def test_lookup_unknown_returns_none(self):
        """Test that unknown labels are not admitted."""
        assert PaymentCategory.lookup("Donation") is None
        assert PaymentCategory.lookup("") is None
        assert PaymentCategory.lookup(None) is None

    def test_extended_categories_exist(self):
        """Test that the extended list is the canonical one."""
        expected = [
            "Dues", "Reunion Deposit", "Fundraiser", "Classmate Support",
            "Benevolence", "Bereavement", "Simple-Deposit", "Picnic",
            "Expense", "Bank Maint Fee",
        ]
        assert [c.value for c in PaymentCategory] == expected


class TestReconciliationModels:
    """Tests for duplicate keys, groups and decisions."""

    def test_duplicate_key_label(self):
        """Test the pipe-delimited rendering of a key."""
        key = DuplicateKey(PaymentType.BANK_CARD, "ABC123", Decimal("50.00"))
        assert key.label == "Bank Card|ABC123|50.00"

    def test_duplicate_keys_compare_amounts_numerically(self):
        """Test that 50 and 50.00 produce equal keys."""
        a = DuplicateKey(PaymentType.ZELLE, "X1", Decimal("50"))
        b = DuplicateKey(PaymentType.ZELLE, "X1", Decimal("50.00"))
        assert a == b
        assert hash(a) == hash(b)

    def test_group_needs_two_members(self, make_entry):
        """Test that a group of one is rejected."""
        key = DuplicateKey(PaymentType.BANK_CARD, "ABC123", Decimal("50.00"))
        with pytest.raises(ValueError):
            DuplicateGroup(key=key, entries=[make_entry(1)])

    def test_rejected_decision_needs_reason(self):
        """Test that a rejection without a reason is invalid."""
        with pytest.raises(ValueError, match="reason"):
            DeletionDecision(accepted=False)

    def test_accepted_decision_cannot_carry_reason(self):
        """Test that an acceptance with a reason is invalid."""
        with pytest.raises(ValueError):
            DeletionDecision(accepted=True, reason=DeletionRejection.NOTHING_SELECTED)


class TestReportFilter:
    """Tests for the report filter model."""

    def test_empty_filter_is_valid(self):
        """Test that every criterion is optional."""
        filters = ReportFilter()
        assert filters.categories == []

    def test_end_before_start_rejected(self):
        """Test the date range check."""
        with pytest.raises(ValueError, match="End date cannot be before start date"):
            ReportFilter(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

    def test_max_below_min_rejected(self):
        """Test the amount range check."""
        with pytest.raises(ValueError, match="Max amount cannot be below min amount"):
            ReportFilter(min_amount=Decimal("10"), max_amount=Decimal("5"))

    def test_yearly_totals_net(self):
        """Test that net adds income and (negative) expenses."""
        totals = YearlyTotals(year=2024, income=Decimal("100"), expenses=Decimal("-30"))
        assert totals.net == Decimal("70")


class TestDirectoryModels:
    """Tests for classmates and session context."""

    def test_classmate_normalized_name(self):
        """Test the name used for duplicate profile detection."""
        classmate = Classmate(id=1, name="  Jane DOE ")
        assert classmate.normalized_name == "jane doe"

    def test_session_without_user_is_system(self):
        """Test the actor name of an anonymous session."""
        assert SessionContext().actor_name == "system"

    def test_user_is_admin(self):
        """Test the admin flag follows the role."""
        assert User(id="1", name="A", role=UserRole.ADMIN).is_admin is True
        assert User(id="2", name="B", role=UserRole.ADMIN_READ_ONLY).is_admin is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            description="Entry added",
        )
        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            description="Imported 3 entries",
            details={"accepted_count": 3},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "import_completed"
        assert log_dict["details"]["accepted_count"] == 3

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.DUPLICATES_DELETED,
            description="Deleted 2 duplicate entries",
            actor="Alice Admin",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "duplicates_deleted"  # event_type
        assert row[7] == "Alice Admin"  # actor
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_entry_added(self):
        """Test AuditEventBuilder.entry_added."""
        correlation_id = uuid4()

        event = AuditEventBuilder.entry_added(
            entry_id=12,
            classmate_name="Jane Doe",
            amount="50.00",
            payment_type="Manual",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.entity_id == "12"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_deletion_rejected(self):
        """Test AuditEventBuilder.deletion_rejected is a warning."""
        event = AuditEventBuilder.deletion_rejected(
            reason="would_empty_group",
            selected_ids=[1, 2],
            blocking_groups=["Bank Card|ABC123|50.00"],
            correlation_id=uuid4(),
        )

        assert event.severity == AuditSeverity.WARNING
        assert event.details["blocking_groups"] == ["Bank Card|ABC123|50.00"]


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount cannot be zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestSettings:
    """Tests for application settings."""

    def test_supported_formats_list(self):
        """Test parsing of the comma-separated format list."""
        settings = AppSettings(supported_import_formats="CSV, xlsx")
        assert settings.supported_formats_list == ["csv", "xlsx"]

    def test_upload_limit_in_bytes(self):
        """Test the size limit conversion."""
        assert AppSettings(max_upload_size_mb=2).max_upload_size_bytes == 2 * 1024 * 1024

    def test_validate_all_settings_never_raises(self):
        """Test the startup check reports instead of failing."""
        results = validate_all_settings()
        assert results["app"] is True
        assert set(results) >= {"google_sheets", "gemini", "app"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
