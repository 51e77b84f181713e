"""Reporting package."""

from alumni_ledger.reports.builder import (
    build_report,
    class_balance,
    entries_for_member,
    filter_entries,
    matches_filter,
    summarize,
    yearly_totals,
)
from alumni_ledger.reports.export import (
    CSV_HEADERS,
    default_export_filename,
    entries_to_csv,
    export_csv,
    write_csv,
)

__all__ = [
    "build_report",
    "class_balance",
    "entries_for_member",
    "filter_entries",
    "matches_filter",
    "summarize",
    "yearly_totals",
    "CSV_HEADERS",
    "default_export_filename",
    "entries_to_csv",
    "export_csv",
    "write_csv",
]
