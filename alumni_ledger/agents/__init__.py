"""AI Agents package."""

from alumni_ledger.agents.report_email import (
    EmailDraft,
    ReportEmailAgent,
    clean_recipients,
    is_valid_email,
)

__all__ = [
    "EmailDraft",
    "ReportEmailAgent",
    "clean_recipients",
    "is_valid_email",
]
