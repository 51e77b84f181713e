"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the local JSON document for Google Sheets (or a real database)
2. Use in-memory storage for testing
3. Keep the import and reconciliation logic decoupled from persistence

The interface is intentionally simple - we're not building a full ORM.
Just the operations the class ledger needs. Ids are assigned by the
store on insertion and increase monotonically; they are never reused.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from alumni_ledger.models.audit import AuditEvent
from alumni_ledger.models.directory import (
    Announcement,
    AnnouncementType,
    Classmate,
    ClassmateStatus,
    UserRole,
)
from alumni_ledger.models.ledger import LedgerEntry, LedgerEntryCandidate


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger entry storage.

    Any storage implementation (local document, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def append(self, candidate: LedgerEntryCandidate) -> LedgerEntry:
        """
        Insert a candidate and assign it the next id.

        Args:
            candidate: The entry to store

        Returns:
            The stored entry, carrying its new id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get(self, entry_id: int) -> Optional[LedgerEntry]:
        """
        Retrieve an entry by its id.

        Returns:
            The entry if found, None otherwise
        """
        pass

    @abstractmethod
    def update(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Replace the stored entry that has the same id.

        Raises:
            NotFoundError: If no entry has this id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, entry_id: int) -> bool:
        """
        Delete an entry by id.

        Returns:
            True if an entry was deleted, False if none had this id
        """
        pass

    @abstractmethod
    def list_entries(self) -> list[LedgerEntry]:
        """
        List every entry in insertion (id) order.
        """
        pass

    @abstractmethod
    def clear(self) -> int:
        """
        Delete every entry.

        Returns:
            Number of entries removed
        """
        pass


class ClassmateStorageInterface(ABC):
    """Abstract interface for classmate profiles."""

    @abstractmethod
    def add_classmate(
        self,
        name: str,
        role: UserRole = UserRole.STANDARD,
        status: ClassmateStatus = ClassmateStatus.ACTIVE,
        email: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Classmate:
        """
        Create a profile and assign it the next id.

        Raises:
            DuplicateError: If another profile already uses the email
        """
        pass

    @abstractmethod
    def get_classmate(self, classmate_id: int) -> Optional[Classmate]:
        pass

    @abstractmethod
    def update_classmate(self, classmate: Classmate) -> Classmate:
        """
        Replace the stored profile that has the same id.

        Raises:
            NotFoundError: If no profile has this id
        """
        pass

    @abstractmethod
    def remove_classmate(self, classmate_id: int) -> bool:
        pass

    @abstractmethod
    def list_classmates(self) -> list[Classmate]:
        """List every profile in id order."""
        pass


class AnnouncementStorageInterface(ABC):
    """Abstract interface for class announcements."""

    @abstractmethod
    def add_announcement(
        self,
        title: str,
        content: str,
        date: datetime,
        type: AnnouncementType = AnnouncementType.TEXT,
        url: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Announcement:
        """Store an announcement and assign it the next id."""
        pass

    @abstractmethod
    def remove_announcement(self, announcement_id: int) -> bool:
        pass

    @abstractmethod
    def list_announcements(self) -> list[Announcement]:
        """List every announcement in id order."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one spreadsheet import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'entry', 'classmate')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
