"""
Row Sources

Reads spreadsheet files into the plain rows the normalizer expects.

Every cell is read as a string (no type inference, no NaN) so that the
normalizer sees exactly what the operator typed: "$1,234.56" stays a
string until parse_amount handles it, and a blank cell stays "".

A file that cannot be read as a table at all is a single error for the
whole import. Nothing is partially imported.
"""

import io
from pathlib import Path
from typing import Optional, Union

import pandas as pd
import structlog

from alumni_ledger.config import get_settings

logger = structlog.get_logger(__name__)

CSV_EXTENSIONS = {"csv"}
EXCEL_EXTENSIONS = {"xlsx", "xls"}


class UnparsableSourceError(Exception):
    """The source could not be read as tabular data."""

    def __init__(self, source_name: str, reason: str):
        self.source_name = source_name
        self.reason = reason
        super().__init__(f"Could not read {source_name}: {reason}")


class UnsupportedFormatError(UnparsableSourceError):
    """The file extension is not one we import."""
    pass


def _extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def _check_format(filename: str, supported: list[str]) -> str:
    extension = _extension(filename)
    if extension not in supported:
        raise UnsupportedFormatError(
            filename,
            f"unsupported format '.{extension}' (expected one of: {', '.join(supported)})",
        )
    return extension


def _check_size(filename: str, size: int, max_size_bytes: int) -> None:
    if size > max_size_bytes:
        raise UnparsableSourceError(
            filename,
            f"file is {size} bytes, limit is {max_size_bytes} bytes",
        )


def _frame_to_rows(frame: pd.DataFrame) -> list[dict[str, str]]:
    frame = frame.fillna("")
    frame.columns = [str(column) for column in frame.columns]
    return frame.to_dict(orient="records")


def _read_frame(buffer, extension: str) -> pd.DataFrame:
    if extension in CSV_EXTENSIONS:
        return pd.read_csv(buffer, dtype=str, keep_default_na=False)
    return pd.read_excel(buffer, dtype=str, keep_default_na=False)


def read_rows_from_bytes(
    data: bytes,
    filename: str,
    max_size_bytes: Optional[int] = None,
    supported_formats: Optional[list[str]] = None,
) -> list[dict[str, str]]:
    """
    Read an uploaded spreadsheet into rows of header -> string value.

    Args:
        data: Raw file content
        filename: Original file name (the extension picks the reader)
        max_size_bytes: Upload limit; defaults to the configured one
        supported_formats: Allowed extensions; defaults to the configured ones

    Raises:
        UnsupportedFormatError: Unknown file extension
        UnparsableSourceError: File too large or not tabular
    """
    app_settings = get_settings().app
    if max_size_bytes is None:
        max_size_bytes = app_settings.max_upload_size_bytes
    if supported_formats is None:
        supported_formats = app_settings.supported_formats_list

    extension = _check_format(filename, supported_formats)
    _check_size(filename, len(data), max_size_bytes)

    try:
        frame = _read_frame(io.BytesIO(data), extension)
    except pd.errors.EmptyDataError:
        logger.info("import_source_empty", source_name=filename)
        return []
    except (pd.errors.ParserError, ValueError, ImportError, OSError) as e:
        logger.warning("import_source_unparsable", source_name=filename, error=str(e))
        raise UnparsableSourceError(filename, str(e))

    rows = _frame_to_rows(frame)
    logger.info("import_source_read", source_name=filename, row_count=len(rows))
    return rows


def read_rows(
    path: Union[str, Path],
    max_size_bytes: Optional[int] = None,
    supported_formats: Optional[list[str]] = None,
) -> list[dict[str, str]]:
    """Read a spreadsheet file from disk. See read_rows_from_bytes."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise UnparsableSourceError(path.name, str(e))
    return read_rows_from_bytes(
        data,
        path.name,
        max_size_bytes=max_size_bytes,
        supported_formats=supported_formats,
    )
