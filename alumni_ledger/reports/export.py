"""
CSV Export

Serializes a filtered view of the ledger for spreadsheets. Standard CSV
quoting applies: a field containing a comma, quote or newline is wrapped
in quotes and its internal quotes are doubled.
"""

import csv
import io
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Optional, TextIO, Union

import structlog

from alumni_ledger.models.ledger import LedgerEntry

logger = structlog.get_logger(__name__)

CSV_HEADERS = [
    "ID",
    "Date",
    "Classmate Name",
    "Category",
    "Payment Type",
    "Description",
    "Amount",
]


def _entry_to_csv_row(entry: LedgerEntry) -> list[str]:
    return [
        str(entry.id),
        entry.date.isoformat(),
        entry.classmate_name,
        entry.category.value,
        entry.payment_type.value,
        entry.description,
        str(entry.amount),
    ]


def write_csv(entries: Iterable[LedgerEntry], stream: TextIO) -> int:
    """Write the header and one row per entry. Returns the number of entries."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    count = 0
    for entry in entries:
        writer.writerow(_entry_to_csv_row(entry))
        count += 1
    return count


def entries_to_csv(entries: Iterable[LedgerEntry]) -> str:
    buffer = io.StringIO()
    write_csv(entries, buffer)
    return buffer.getvalue()


def default_export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"transactions_report_{today.isoformat()}.csv"


def export_csv(
    entries: Iterable[LedgerEntry],
    destination: Union[str, Path],
) -> int:
    """
    Write entries to a CSV file. A directory destination gets the
    default dated file name.

    Returns:
        Number of entries written
    """
    path = Path(destination)
    if path.is_dir():
        path = path / default_export_filename()

    with path.open("w", encoding="utf-8", newline="") as handle:
        count = write_csv(entries, handle)

    logger.info("report_csv_exported", path=str(path), row_count=count)
    return count
