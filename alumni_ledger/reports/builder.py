"""
Report Builder

Read-only views over a ledger snapshot: the advanced filtered report,
the class balance, per-year totals and a member's own entries.

All functions take the entries as a plain list. They never touch storage,
so the caller decides which snapshot is being reported on.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from alumni_ledger.models.ledger import (
    LedgerEntry,
    Report,
    ReportFilter,
    ReportSummary,
    YearlyTotals,
)

YEARS_SHOWN = 5


def _contains(haystack: Optional[str], needle: Optional[str]) -> bool:
    if not needle:
        return True
    return needle.lower() in (haystack or "").lower()


def matches_filter(entry: LedgerEntry, filters: ReportFilter) -> bool:
    """Check one entry against every criterion of the filter."""
    if filters.start_date and entry.date < filters.start_date:
        return False
    if filters.end_date and entry.date > filters.end_date:
        return False
    if not _contains(entry.classmate_name, filters.classmate_name):
        return False
    if not _contains(entry.description, filters.description):
        return False
    if filters.transaction_id and not _contains(entry.transaction_id, filters.transaction_id):
        return False
    if filters.categories and entry.category not in filters.categories:
        return False
    if filters.payment_types and entry.payment_type not in filters.payment_types:
        return False
    if filters.min_amount is not None and entry.amount < filters.min_amount:
        return False
    if filters.max_amount is not None and entry.amount > filters.max_amount:
        return False
    return True


def filter_entries(
    entries: Iterable[LedgerEntry],
    filters: Optional[ReportFilter] = None,
) -> list[LedgerEntry]:
    """
    Apply a filter and sort newest first.

    Entries on the same date keep their ledger order.
    """
    filters = filters or ReportFilter()
    matched = [entry for entry in entries if matches_filter(entry, filters)]
    matched.sort(key=lambda entry: entry.date, reverse=True)
    return matched


def summarize(entries: Iterable[LedgerEntry]) -> ReportSummary:
    entries = list(entries)
    return ReportSummary(
        count=len(entries),
        total_amount=sum((entry.amount for entry in entries), Decimal("0")),
    )


def build_report(
    entries: Iterable[LedgerEntry],
    filters: Optional[ReportFilter] = None,
) -> Report:
    """Filter, sort and summarize in one go."""
    filters = filters or ReportFilter()
    matched = filter_entries(entries, filters)
    return Report(
        filters=filters,
        entries=matched,
        summary=summarize(matched),
    )


def class_balance(entries: Iterable[LedgerEntry]) -> Decimal:
    """Sum of every signed amount in the ledger."""
    return sum((entry.amount for entry in entries), Decimal("0"))


def yearly_totals(
    entries: Iterable[LedgerEntry],
    years: int = YEARS_SHOWN,
) -> list[YearlyTotals]:
    """
    Money in and money out per calendar year, oldest year first.

    Only years that have entries are listed, and only the most recent
    `years` of them.
    """
    totals: dict[int, YearlyTotals] = {}
    for entry in entries:
        year = entry.date.year
        bucket = totals.setdefault(year, YearlyTotals(year=year))
        if entry.amount >= 0:
            bucket.income += entry.amount
        else:
            bucket.expenses += entry.amount

    ordered = [totals[year] for year in sorted(totals)]
    return ordered[-years:] if years > 0 else []


def entries_for_member(
    entries: Iterable[LedgerEntry],
    member_name: str,
) -> list[LedgerEntry]:
    """
    Entries recorded under a member's name, newest first.

    Every word of the member's name must appear somewhere in the entry's
    classmate name, so "Jane Doe" also finds "Doe, Jane" and "Jane A. Doe".
    """
    parts = [part for part in member_name.lower().split() if part]
    if not parts:
        return []

    mine = [
        entry for entry in entries
        if all(part in entry.classmate_name.lower() for part in parts)
    ]
    mine.sort(key=lambda entry: entry.date, reverse=True)
    return mine
