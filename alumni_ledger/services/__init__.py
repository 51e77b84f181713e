"""Services package."""

from alumni_ledger.services.storage import (
    AnnouncementStorageInterface,
    AuditStorageInterface,
    ClassmateStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    LedgerStorageInterface,
    LocalStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AnnouncementStorageInterface",
    "AuditStorageInterface",
    "ClassmateStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "LedgerStorageInterface",
    "LocalStore",
    "NotFoundError",
    "StorageError",
]
