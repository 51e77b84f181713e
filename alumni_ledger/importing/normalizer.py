"""
Import Normalizer

Turns loosely structured spreadsheet rows into ledger entry candidates.

Spreadsheets exported by banks, payment apps and class officers never
agree on their headers: "Classmate Name", "classmatename" and
" CLASSMATE NAME " all mean the same column. Every header is reduced to a
canonical key (whitespace removed, lowercased) before any lookup.

DESIGN DECISION: Invalid rows are dropped, not reported. An import is a
bulk convenience; the operator sees "N imported, M skipped" and each
skipped row is logged at debug level for whoever needs to dig in.

This module is pure: no ids are assigned and nothing is stored.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog
from dateutil import parser as date_parser

from alumni_ledger.models.ledger import (
    ImportResult,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
)

logger = structlog.get_logger(__name__)

# Canonical header keys, in resolution priority order
AMOUNT_HEADERS = ("amount", "debit", "credit")
NAME_HEADERS = ("classmatename", "name")
CATEGORY_HEADER = "category"
DATE_HEADER = "date"
DESCRIPTION_HEADER = "description"
TRANSACTION_ID_HEADER = "transactionid"

DEFAULT_CATEGORY = PaymentCategory.SIMPLE_DEPOSIT

_WHITESPACE = re.compile(r"\s+")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")

# Every field differs between the two, so a partial date never parses alike
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def canonicalize_header(label: str) -> str:
    """Remove all whitespace and lowercase: ' Classmate Name ' -> 'classmatename'."""
    return _WHITESPACE.sub("", str(label)).lower()


def canonicalize_row(row: Mapping) -> dict[str, str]:
    """
    Re-key a raw row by canonical header.

    When two headers collapse to the same key, the first one wins.
    Missing values become empty strings.
    """
    canonical: dict[str, str] = {}
    for label, value in row.items():
        if label is None:
            continue
        key = canonicalize_header(label)
        if key in canonical:
            continue
        canonical[key] = "" if value is None else str(value)
    return canonical


def _first_non_empty(row: Mapping[str, str], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = (row.get(key) or "").strip()
        if value:
            return value
    return None


def parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    """
    Parse a money string after stripping everything but digits, '.' and '-'.

    "$1,234.56" -> Decimal("1234.56"). A trailing minus, as some bank
    exports write debits ("50.00-"), is moved to the front. Returns None
    when nothing numeric is left or the result is not finite.
    """
    cleaned = _NON_NUMERIC.sub("", raw or "")
    if cleaned.endswith("-") and not cleaned.startswith("-"):
        cleaned = "-" + cleaned[:-1]
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_date(raw: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date in any common spelling, or None.

    dateutil fills missing parts from a default date, so "5" or "March"
    would otherwise depend on when the import runs. The text is parsed
    against two different defaults; a partial date comes out differently
    and is rejected.
    """
    text = (raw or "").strip()
    if not text:
        return None
    try:
        first = date_parser.parse(text, default=_DEFAULT_A).date()
        second = date_parser.parse(text, default=_DEFAULT_B).date()
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


def resolve_category(raw: Optional[str]) -> PaymentCategory:
    """Match a category label case-insensitively, defaulting to Simple-Deposit."""
    return PaymentCategory.lookup(raw) or DEFAULT_CATEGORY


def normalize_row(row: Mapping) -> Optional[LedgerEntryCandidate]:
    """
    Convert one raw row into a candidate, or None when the row is invalid.

    A row is invalid when its date is missing or unparsable, its name is
    empty, or its amount is unparsable or exactly zero.
    """
    canonical = canonicalize_row(row)

    raw_amount = _first_non_empty(canonical, AMOUNT_HEADERS) or "0"
    amount = parse_amount(raw_amount)
    if amount is None:
        logger.debug("import_row_skipped", reason="unparsable_amount", amount=raw_amount)
        return None
    if amount == 0:
        logger.debug("import_row_skipped", reason="zero_amount", amount=raw_amount)
        return None

    name = _first_non_empty(canonical, NAME_HEADERS)
    if not name:
        logger.debug("import_row_skipped", reason="missing_name")
        return None

    entry_date = parse_date(canonical.get(DATE_HEADER))
    if entry_date is None:
        logger.debug(
            "import_row_skipped",
            reason="invalid_date",
            date=canonical.get(DATE_HEADER, ""),
        )
        return None

    category = resolve_category(canonical.get(CATEGORY_HEADER))
    description = (canonical.get(DESCRIPTION_HEADER) or "").strip()
    transaction_id = (canonical.get(TRANSACTION_ID_HEADER) or "").strip()

    return LedgerEntryCandidate(
        date=entry_date,
        description=description or f"{category.value} - Imported",
        category=category,
        amount=amount,
        classmate_name=name,
        payment_type=PaymentType.IMPORTED,
        transaction_id=transaction_id or None,
    )


def normalize_rows(
    rows: Iterable[Mapping],
    source_name: Optional[str] = None,
) -> ImportResult:
    """
    Normalize a batch of rows, keeping accepted candidates in input order.
    """
    candidates: list[LedgerEntryCandidate] = []
    skipped = 0

    for row in rows:
        candidate = normalize_row(row)
        if candidate is None:
            skipped += 1
        else:
            candidates.append(candidate)

    logger.info(
        "import_rows_normalized",
        source_name=source_name,
        accepted=len(candidates),
        skipped=skipped,
    )
    return ImportResult(
        source_name=source_name,
        candidates=candidates,
        skipped_count=skipped,
    )
