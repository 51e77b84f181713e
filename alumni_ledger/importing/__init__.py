"""Spreadsheet import package."""

from alumni_ledger.importing.normalizer import (
    canonicalize_header,
    canonicalize_row,
    normalize_row,
    normalize_rows,
    parse_amount,
    parse_date,
    resolve_category,
)
from alumni_ledger.importing.sources import (
    UnparsableSourceError,
    UnsupportedFormatError,
    read_rows,
    read_rows_from_bytes,
)

__all__ = [
    "canonicalize_header",
    "canonicalize_row",
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "parse_date",
    "resolve_category",
    "UnparsableSourceError",
    "UnsupportedFormatError",
    "read_rows",
    "read_rows_from_bytes",
]
