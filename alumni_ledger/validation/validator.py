"""
Two-Stage Validation Pipeline

DESIGN DECISION: Entries typed in by hand (manual entries, member
payments, edits) are validated in two distinct stages before they reach
the ledger. Imported rows are not: the import normalizer applies its own
drop-silently rules.

STAGE 1 - SCHEMA VALIDATION:
- Required values (a classmate name)
- A non-zero amount
- This catches empty or half-filled forms

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Absurd amount detection
- Sign consistency with the category (expenses go out, dues come in)
- Name sanity checks
- Overlong field values
- Duplicate detection against the stored ledger
- This catches logically suspicious data

Stage 2 only raises warnings: the operator is the authority on whether an
unusual entry is real.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from alumni_ledger.config import AppSettings, get_settings
from alumni_ledger.models.ledger import (
    OUTGOING_CATEGORIES,
    LedgerEntryCandidate,
    ValidationIssue,
    ValidationResult,
)
from alumni_ledger.reconcile.duplicates import duplicate_key
from alumni_ledger.services.storage import LedgerStorageInterface, StorageError

logger = structlog.get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 500
MAX_NAME_LENGTH = 200
MAX_TRANSACTION_ID_LENGTH = 100


class EntryValidator:
    """
    Validates ledger entry candidates through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (uses storage for duplicate checks)
    """

    def __init__(
        self,
        ledger_storage: Optional[LedgerStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            ledger_storage: Storage interface for duplicate checking.
                         If None, duplicate checking is skipped.
            settings: Thresholds to validate against. Defaults to the
                      application settings.
        """
        self._storage = ledger_storage
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        candidate: LedgerEntryCandidate,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not candidate.classmate_name:
            issues.append(ValidationIssue(
                field="classmate_name",
                issue_type="missing",
                message="Classmate name is required",
                severity="error",
                suggested_fix="Enter the name of the payer or payee",
            ))

        if candidate.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be zero",
                severity="error",
                suggested_fix="Enter the amount that was paid or spent",
            ))

        if not candidate.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="No description given",
                severity="info",
            ))

        # Schema is valid if no errors (warnings are okay)
        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        candidate: LedgerEntryCandidate,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Future dates
        - Absurd amounts
        - Amount sign against the category
        - Classmate name sanity
        - Field lengths

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        today = date.today()

        # Future date check (with tolerance)
        max_future_days = self._settings.future_date_tolerance_days
        max_future_date = today + timedelta(days=max_future_days)

        if candidate.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Entry date ({candidate.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Absurd amount check
        max_amount = Decimal(str(self._settings.max_entry_amount))
        if abs(candidate.amount) > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (${candidate.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        # Money out should be negative, money in positive
        outgoing = candidate.category in OUTGOING_CATEGORIES
        if outgoing and candidate.amount > 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="inconsistent",
                message=f"{candidate.category.value} entries are usually negative",
                severity="warning",
                suggested_fix="Enter money leaving the class account as a negative amount",
            ))
        elif not outgoing and candidate.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="inconsistent",
                message=f"{candidate.category.value} entries are usually positive",
                severity="warning",
                suggested_fix="Please verify the sign of the amount",
            ))

        # Name sanity (not just numbers/symbols)
        name = candidate.classmate_name
        alpha_count = sum(1 for c in name if c.isalpha())
        if len(name) > 0 and alpha_count / len(name) < 0.3:
            issues.append(ValidationIssue(
                field="classmate_name",
                issue_type="suspicious_value",
                message="Classmate name looks unusual (too many numbers/symbols)",
                severity="warning",
                suggested_fix="Please verify the classmate name",
            ))

        # Field lengths
        for field, value, limit in (
            ("description", candidate.description, MAX_DESCRIPTION_LENGTH),
            ("classmate_name", name, MAX_NAME_LENGTH),
            ("transaction_id", candidate.transaction_id or "", MAX_TRANSACTION_ID_LENGTH),
        ):
            if len(value) > limit:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="too_long",
                    message=f"{field.replace('_', ' ').capitalize()} is longer than {limit} characters",
                    severity="warning",
                    suggested_fix="Please shorten this value",
                ))

        # Semantic validation passes if no errors
        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _check_duplicates(
        self,
        candidate: LedgerEntryCandidate,
        exclude_id: Optional[int] = None,
    ) -> list[ValidationIssue]:
        """
        Check whether the stored ledger already holds a probable duplicate.

        This requires storage access.
        """
        issues = []

        if self._storage is None:
            return issues

        key = duplicate_key(candidate)
        if key is None:
            return issues

        try:
            existing = self._storage.list_entries()
        except StorageError as e:
            # Don't fail validation due to storage errors
            logger.warning("duplicate_check_failed", error=str(e))
            return issues

        matches = [
            entry.id for entry in existing
            if entry.id != exclude_id and duplicate_key(entry) == key
        ]
        if matches:
            issues.append(ValidationIssue(
                field="transaction_id",
                issue_type="potential_duplicate",
                message=(
                    f"Entry {matches[0]} already records {key.payment_type.value} "
                    f"transaction {key.transaction_id} for ${key.amount}"
                ),
                severity="warning",
                suggested_fix="Please verify this isn't a duplicate entry",
            ))

        return issues

    def validate(
        self,
        candidate: LedgerEntryCandidate,
        check_duplicates: bool = True,
        exclude_id: Optional[int] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            candidate: The entry to validate
            check_duplicates: Whether to check for duplicates (requires storage)
            exclude_id: Stored entry being edited, ignored by the duplicate check

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []
        warnings = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(candidate)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(candidate)
            all_issues.extend(semantic_issues)

            if check_duplicates:
                all_issues.extend(self._check_duplicates(candidate, exclude_id))

        # Collect warnings
        for issue in all_issues:
            if issue.severity == "warning":
                warnings.append(issue.message)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to class officers.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.schema_valid:
            lines.append("❌ The entry is missing required information:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("The entry was saved, but please review it carefully.")
        else:
            lines.append("")
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines).strip()
