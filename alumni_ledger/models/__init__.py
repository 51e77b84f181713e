"""
Data Models Package

This package contains all Pydantic models used in the Alumni Ledger system.
All data flowing through the system must conform to these schemas.
"""

from alumni_ledger.models.ledger import (
    OUTGOING_CATEGORIES,
    DeletionDecision,
    DeletionRejection,
    DuplicateGroup,
    DuplicateKey,
    ImportResult,
    LedgerEntry,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
    Report,
    ReportFilter,
    ReportSummary,
    ValidationIssue,
    ValidationResult,
    YearlyTotals,
)
from alumni_ledger.models.directory import (
    Announcement,
    AnnouncementType,
    Classmate,
    ClassmateStatus,
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

__all__ = [
    # Ledger models
    "OUTGOING_CATEGORIES",
    "DeletionDecision",
    "DeletionRejection",
    "DuplicateGroup",
    "DuplicateKey",
    "ImportResult",
    "LedgerEntry",
    "LedgerEntryCandidate",
    "PaymentCategory",
    "PaymentType",
    "Report",
    "ReportFilter",
    "ReportSummary",
    "ValidationIssue",
    "ValidationResult",
    "YearlyTotals",
    # Directory models
    "Announcement",
    "AnnouncementType",
    "Classmate",
    "ClassmateStatus",
    "SessionContext",
    "User",
    "UserRole",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
