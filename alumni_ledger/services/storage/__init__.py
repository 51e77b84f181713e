"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The local JSON document is the default backend; Google Sheets is the shared
alternative. Both are swappable behind the same interfaces.
"""

from alumni_ledger.services.storage.interface import (
    AnnouncementStorageInterface,
    AuditStorageInterface,
    ClassmateStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from alumni_ledger.services.storage.local import LocalStore
from alumni_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AnnouncementStorageInterface",
    "AuditStorageInterface",
    "ClassmateStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Local document implementation
    "LocalStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
