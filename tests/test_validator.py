"""Tests for the two-stage entry validator."""

from datetime import date, timedelta

from alumni_ledger.models.ledger import PaymentCategory, PaymentType
from alumni_ledger.validation import EntryValidator


def _issue_types(result):
    return [issue.issue_type for issue in result.issues]


class TestSchemaStage:
    """Tests for required values."""

    def test_valid_entry(self, app_settings, make_candidate):
        """Test a clean manual entry."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate())
        assert result.is_valid is True
        assert result.warnings == []

    def test_missing_name_is_error(self, app_settings, make_candidate):
        """Test that a blank classmate name blocks the entry."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(classmate_name=""))
        assert result.is_valid is False
        assert result.schema_valid is False
        assert result.has_errors

    def test_zero_amount_is_error(self, app_settings, make_candidate):
        """Test that a zero amount blocks the entry."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(amount="0"))
        assert result.is_valid is False
        assert "invalid_value" in _issue_types(result)

    def test_semantic_stage_skipped_on_schema_error(self, app_settings, make_candidate):
        """Test that stage 2 only runs on schema-valid input."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(amount="0", entry_date=date(2999, 1, 1)))
        assert "future_date" not in _issue_types(result)


class TestSemanticStage:
    """Tests for plausibility warnings."""

    def test_future_date_warns(self, app_settings, make_candidate):
        """Test dates beyond the tolerance."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(entry_date=date.today() + timedelta(days=30)))
        assert result.is_valid is True
        assert "future_date" in _issue_types(result)

    def test_near_future_date_tolerated(self, app_settings, make_candidate):
        """Test dates inside the tolerance."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(entry_date=date.today() + timedelta(days=2)))
        assert "future_date" not in _issue_types(result)

    def test_large_amount_warns(self, app_settings, make_candidate):
        """Test amounts above the configured ceiling."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(amount="25000"))
        assert "suspicious_value" in _issue_types(result)

    def test_positive_expense_warns(self, app_settings, make_candidate):
        """Test sign consistency for outgoing categories."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(category=PaymentCategory.EXPENSE, amount="40"))
        assert "inconsistent" in _issue_types(result)

    def test_negative_dues_warn(self, app_settings, make_candidate):
        """Test sign consistency for incoming categories."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(amount="-40"))
        assert "inconsistent" in _issue_types(result)

    def test_negative_fee_is_clean(self, app_settings, make_candidate):
        """Test that a negative bank fee raises nothing."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(
            make_candidate(category=PaymentCategory.BANK_MAINT_FEE, amount="-5")
        )
        assert result.warnings == []

    def test_long_description_warns(self, app_settings, make_candidate):
        """Test that an overlong description is flagged but still saved."""
        validator = EntryValidator(settings=app_settings)
        candidate = make_candidate().model_copy(update={"description": "x" * 600})
        result = validator.validate(candidate)
        assert result.is_valid is True
        assert [i.field for i in result.issues if i.issue_type == "too_long"] == ["description"]

    def test_long_name_and_reference_warn(self, app_settings, make_candidate):
        """Test length warnings for the classmate name and transaction id."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(
            make_candidate(classmate_name="Jane " + "Doe" * 82, transaction_id="T" * 150),
            check_duplicates=False,
        )
        assert result.is_valid is True
        flagged = [i.field for i in result.issues if i.issue_type == "too_long"]
        assert flagged == ["classmate_name", "transaction_id"]

    def test_symbol_name_warns(self, app_settings, make_candidate):
        """Test the name sanity check."""
        validator = EntryValidator(settings=app_settings)
        result = validator.validate(make_candidate(classmate_name="#12345"))
        assert "suspicious_value" in _issue_types(result)


class TestDuplicateCheck:
    """Tests for the stored-ledger duplicate warning."""

    def test_duplicate_warns(self, app_settings, store, make_candidate):
        """Test that a stored entry with the same key is reported."""
        store.append(make_candidate(transaction_id="abc123", payment_type=PaymentType.ZELLE))
        validator = EntryValidator(ledger_storage=store, settings=app_settings)

        result = validator.validate(
            make_candidate(transaction_id="ABC123", payment_type=PaymentType.ZELLE)
        )
        assert result.is_valid is True
        assert "potential_duplicate" in _issue_types(result)

    def test_edit_ignores_itself(self, app_settings, store, make_candidate):
        """Test that an edited entry is not its own duplicate."""
        entry = store.append(make_candidate(transaction_id="abc123"))
        validator = EntryValidator(ledger_storage=store, settings=app_settings)

        result = validator.validate(entry.to_candidate(), exclude_id=entry.id)
        assert "potential_duplicate" not in _issue_types(result)

    def test_no_transaction_id_never_duplicate(self, app_settings, store, make_candidate):
        """Test that entries without a reference are not matched."""
        store.append(make_candidate())
        validator = EntryValidator(ledger_storage=store, settings=app_settings)
        assert "potential_duplicate" not in _issue_types(validator.validate(make_candidate()))


class TestSummary:
    """Tests for the operator-facing summary."""

    def test_clean_summary(self, app_settings, make_candidate):
        """Test the all-clear message."""
        validator = EntryValidator(settings=app_settings)
        summary = validator.get_user_friendly_summary(validator.validate(make_candidate()))
        assert summary == "✅ All checks passed!"

    def test_error_summary_lists_fixes(self, app_settings, make_candidate):
        """Test that errors and suggested fixes are listed."""
        validator = EntryValidator(settings=app_settings)
        summary = validator.get_user_friendly_summary(
            validator.validate(make_candidate(amount="0"))
        )
        assert "Amount cannot be zero" in summary
        assert "Please fix the issues above before saving." in summary
