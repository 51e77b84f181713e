"""
Core Ledger Models for Alumni Ledger

These models define the schemas for all ledger data flowing through the system.
They are designed to:
1. Keep category and payment type inside closed enumerations
2. Carry money as Decimal, never float
3. Be serializable for storage and logging

DESIGN DECISION: A candidate is an entry without an id. Only the storage
layer assigns ids, so the import and reconciliation code never has to.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentCategory(str, Enum):
    """
    What a ledger entry is for.

    The values are the labels the class has always used on its
    spreadsheets, so they double as the import vocabulary.
    """
    DUES = "Dues"
    REUNION_DEPOSIT = "Reunion Deposit"
    FUNDRAISER = "Fundraiser"
    CLASSMATE_SUPPORT = "Classmate Support"
    BENEVOLENCE = "Benevolence"
    BEREAVEMENT = "Bereavement"
    SIMPLE_DEPOSIT = "Simple-Deposit"
    PICNIC = "Picnic"
    EXPENSE = "Expense"
    BANK_MAINT_FEE = "Bank Maint Fee"

    @classmethod
    def lookup(cls, label: Optional[str]) -> Optional["PaymentCategory"]:
        """Case-insensitive match against the category labels."""
        if not label:
            return None
        wanted = label.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        return None


# Categories that move money out of the class account
OUTGOING_CATEGORIES = frozenset({
    PaymentCategory.EXPENSE,
    PaymentCategory.BANK_MAINT_FEE,
    PaymentCategory.BEREAVEMENT,
})


class PaymentType(str, Enum):
    """
    Where the money came through.

    MANUAL and IMPORTED are provenance markers rather than payment rails:
    they tag entries typed in by an admin or read from a spreadsheet.
    """
    SUNTRUST = "Suntrust"
    TRUIST = "Truist"
    PAYPAL = "PayPal"
    CASHAPP = "CashApp"
    ZELLE = "Zelle"
    CASH = "CASH"
    BANK_CARD = "Bank Card"
    OTHER = "Other"
    MANUAL = "Manual"
    IMPORTED = "Imported"


# =============================================================================
# CORE LEDGER MODEL
# =============================================================================

class LedgerEntryCandidate(BaseModel):
    """
    A ledger entry awaiting id assignment and store insertion.

    Produced by the import normalizer, manual entry and member payments.
    Business rules (non-empty name, non-zero amount) are enforced by
    the normalizer and the EntryValidator, not here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    description: str = Field(
        default="",
        description="Free text; defaults to a category-derived label"
    )
    category: PaymentCategory = Field(
        ...,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount in USD (negative = money out)"
    )
    classmate_name: str = Field(
        ...,
        description="Payer or payee"
    )
    payment_type: PaymentType = Field(
        ...,
        description="Provenance of the entry"
    )
    transaction_id: Optional[str] = Field(
        default=None,
        description="External reference; entries without one are never duplicate-matched"
    )
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None

    @field_validator('transaction_id')
    @classmethod
    def blank_transaction_id_is_absent(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('amount')
    @classmethod
    def amount_must_be_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        return v


class LedgerEntry(LedgerEntryCandidate):
    """
    A stored ledger entry.

    The id is assigned by the store on creation, increases monotonically,
    and is never changed afterwards.
    """

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned identifier"
    )

    @classmethod
    def from_candidate(cls, entry_id: int, candidate: LedgerEntryCandidate) -> "LedgerEntry":
        return cls(id=entry_id, **candidate.model_dump())

    def to_candidate(self) -> LedgerEntryCandidate:
        return LedgerEntryCandidate(**self.model_dump(exclude={"id"}))


# =============================================================================
# IMPORT MODELS
# =============================================================================

class ImportResult(BaseModel):
    """
    Result of normalizing one batch of spreadsheet rows.

    Invalid rows are dropped rather than reported; only their count
    survives, for the success/failure summary shown to the operator.
    """

    source_name: Optional[str] = Field(
        default=None,
        description="File the rows came from, if any"
    )
    candidates: list[LedgerEntryCandidate] = Field(
        default_factory=list,
        description="Accepted candidates in input order"
    )
    skipped_count: int = Field(
        default=0,
        ge=0,
        description="Rows dropped by the validity checks"
    )

    @computed_field
    @property
    def accepted_count(self) -> int:
        return len(self.candidates)

    @property
    def total_rows(self) -> int:
        return self.accepted_count + self.skipped_count


# =============================================================================
# RECONCILIATION MODELS
# =============================================================================

class DuplicateKey(NamedTuple):
    """Composite key shared by probable duplicates."""

    payment_type: PaymentType
    transaction_id: str
    amount: Decimal

    @property
    def label(self) -> str:
        return f"{self.payment_type.value}|{self.transaction_id}|{self.amount}"


class DuplicateGroup(BaseModel):
    """
    Two or more entries sharing a duplicate key.

    Never persisted; recomputed from the current ledger on every
    reconciliation pass.
    """
    model_config = ConfigDict(frozen=True)

    key: DuplicateKey
    entries: list[LedgerEntry] = Field(..., min_length=2)

    @property
    def label(self) -> str:
        return self.key.label

    @property
    def entry_ids(self) -> list[int]:
        return [entry.id for entry in self.entries]


class DeletionRejection(str, Enum):
    """Why a bulk deletion request was refused."""
    NOTHING_SELECTED = "nothing_selected"
    WOULD_EMPTY_GROUP = "would_empty_group"


class DeletionDecision(BaseModel):
    """
    Accept/reject verdict for a bulk deletion over duplicate groups.

    Rejections are values, not exceptions: the caller shows the
    message to the operator and nothing is deleted.
    """

    accepted: bool
    reason: Optional[DeletionRejection] = None
    blocking_groups: list[str] = Field(
        default_factory=list,
        description="Labels of groups the selection would empty"
    )
    message: str = ""

    @model_validator(mode='after')
    def rejection_needs_reason(self) -> 'DeletionDecision':
        if not self.accepted and self.reason is None:
            raise ValueError("A rejected deletion must carry a reason")
        if self.accepted and self.reason is not None:
            raise ValueError("An accepted deletion cannot carry a rejection reason")
        return self


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage entry validation.

    Stage 1: Schema validation (required values)
    Stage 2: Semantic validation (plausibility checks)
    """

    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# REPORT MODELS
# =============================================================================

class ReportFilter(BaseModel):
    """
    Filters for the advanced transaction report.

    Every criterion is optional; an empty filter matches the whole ledger.
    Text criteria are case-insensitive substring matches.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    classmate_name: Optional[str] = None
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    categories: list[PaymentCategory] = Field(default_factory=list)
    payment_types: list[PaymentType] = Field(default_factory=list)
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    @model_validator(mode='after')
    def validate_ranges(self) -> 'ReportFilter':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.max_amount < self.min_amount
        ):
            raise ValueError("Max amount cannot be below min amount")
        return self


class ReportSummary(BaseModel):
    """Count and total of a filtered view."""

    count: int = Field(ge=0)
    total_amount: Decimal


class YearlyTotals(BaseModel):
    """Money in and money out for one calendar year."""

    year: int
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income + self.expenses


class Report(BaseModel):
    """A filtered, sorted view of the ledger with its summary."""

    generated_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    filters: ReportFilter
    entries: list[LedgerEntry] = Field(default_factory=list)
    summary: ReportSummary
