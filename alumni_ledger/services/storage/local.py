"""
Local Document Storage Implementation

DESIGN DECISION: The class ledger fits comfortably in a single JSON
document, the same shape a browser app keeps in local storage:

    {
        "transactions": [...],
        "announcements": [...],
        "classmates": [...],
        "audit": [...],
        "sequences": {"transactions": 12, ...}
    }

TRADEOFFS:
- The whole document is rewritten on every change (fine for a class ledger)
- No concurrent writers (the system is single-threaded anyway)

Without a path the store lives in memory only, which is what the tests use.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from alumni_ledger.models.audit import AuditEvent
from alumni_ledger.models.directory import (
    Announcement,
    AnnouncementType,
    Classmate,
    ClassmateStatus,
    UserRole,
)
from alumni_ledger.models.ledger import LedgerEntry, LedgerEntryCandidate
from alumni_ledger.services.storage.interface import (
    AnnouncementStorageInterface,
    AuditStorageInterface,
    ClassmateStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

logger = structlog.get_logger(__name__)

COLLECTIONS = ("transactions", "announcements", "classmates", "audit")


class LocalStore(
    LedgerStorageInterface,
    ClassmateStorageInterface,
    AnnouncementStorageInterface,
    AuditStorageInterface,
):
    """
    JSON document store implementing every storage interface.

    Ids come from per-collection sequences that only move forward, so an
    id freed by a deletion is never handed out again.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None
        self._document = self._load()

    # -------------------------------------------------------------------------
    # Document handling
    # -------------------------------------------------------------------------

    def _empty_document(self) -> dict:
        document = {name: [] for name in COLLECTIONS}
        document["sequences"] = {}
        return document

    def _load(self) -> dict:
        document = self._empty_document()
        if self._path is None or not self._path.exists():
            return document

        try:
            with self._path.open("r", encoding="utf-8") as handle:
                stored = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read ledger document {self._path}: {e}")

        if not isinstance(stored, dict):
            raise StorageError(f"Ledger document {self._path} is not a JSON object")

        document.update(stored)
        for name in COLLECTIONS:
            document.setdefault(name, [])
        logger.info(
            "local_store_loaded",
            path=str(self._path),
            entries=len(document["transactions"]),
        )
        return document

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(self._document, handle, indent=2)
            tmp_path.replace(self._path)
        except OSError as e:
            raise StorageError(f"Failed to write ledger document {self._path}: {e}")

    def _next_id(self, collection: str) -> int:
        sequences = self._document["sequences"]
        highest = max(
            (record["id"] for record in self._document[collection]),
            default=0,
        )
        next_id = max(sequences.get(collection, 0), highest) + 1
        sequences[collection] = next_id
        return next_id

    def _index_of(self, collection: str, record_id: int) -> Optional[int]:
        for idx, record in enumerate(self._document[collection]):
            if record["id"] == record_id:
                return idx
        return None

    def _remove(self, collection: str, record_id: int) -> bool:
        idx = self._index_of(collection, record_id)
        if idx is None:
            return False
        del self._document[collection][idx]
        self._save()
        return True

    # -------------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------------

    def append(self, candidate: LedgerEntryCandidate) -> LedgerEntry:
        entry = LedgerEntry.from_candidate(self._next_id("transactions"), candidate)
        self._document["transactions"].append(entry.model_dump(mode="json"))
        self._save()
        return entry

    def get(self, entry_id: int) -> Optional[LedgerEntry]:
        idx = self._index_of("transactions", entry_id)
        if idx is None:
            return None
        return LedgerEntry.model_validate(self._document["transactions"][idx])

    def update(self, entry: LedgerEntry) -> LedgerEntry:
        idx = self._index_of("transactions", entry.id)
        if idx is None:
            raise NotFoundError(f"Entry not found: {entry.id}")
        self._document["transactions"][idx] = entry.model_dump(mode="json")
        self._save()
        return entry

    def remove(self, entry_id: int) -> bool:
        return self._remove("transactions", entry_id)

    def list_entries(self) -> list[LedgerEntry]:
        return [
            LedgerEntry.model_validate(record)
            for record in self._document["transactions"]
        ]

    def clear(self) -> int:
        removed = len(self._document["transactions"])
        self._document["transactions"] = []
        self._save()
        return removed

    # -------------------------------------------------------------------------
    # Classmates
    # -------------------------------------------------------------------------

    def add_classmate(
        self,
        name: str,
        role: UserRole = UserRole.STANDARD,
        status: ClassmateStatus = ClassmateStatus.ACTIVE,
        email: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Classmate:
        if email:
            for record in self._document["classmates"]:
                if (record.get("email") or "").lower() == email.lower():
                    raise DuplicateError(f"A classmate already uses {email}")

        classmate = Classmate(
            id=self._next_id("classmates"),
            name=name,
            role=role,
            status=status,
            email=email,
            address=address,
            phone=phone,
        )
        self._document["classmates"].append(classmate.model_dump(mode="json"))
        self._save()
        return classmate

    def get_classmate(self, classmate_id: int) -> Optional[Classmate]:
        idx = self._index_of("classmates", classmate_id)
        if idx is None:
            return None
        return Classmate.model_validate(self._document["classmates"][idx])

    def update_classmate(self, classmate: Classmate) -> Classmate:
        idx = self._index_of("classmates", classmate.id)
        if idx is None:
            raise NotFoundError(f"Classmate not found: {classmate.id}")
        self._document["classmates"][idx] = classmate.model_dump(mode="json")
        self._save()
        return classmate

    def remove_classmate(self, classmate_id: int) -> bool:
        return self._remove("classmates", classmate_id)

    def list_classmates(self) -> list[Classmate]:
        return [
            Classmate.model_validate(record)
            for record in self._document["classmates"]
        ]

    # -------------------------------------------------------------------------
    # Announcements
    # -------------------------------------------------------------------------

    def add_announcement(
        self,
        title: str,
        content: str,
        date: datetime,
        type: AnnouncementType = AnnouncementType.TEXT,
        url: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Announcement:
        announcement = Announcement(
            id=self._next_id("announcements"),
            title=title,
            content=content,
            date=date,
            type=type,
            url=url,
            image_url=image_url,
        )
        self._document["announcements"].append(announcement.model_dump(mode="json"))
        self._save()
        return announcement

    def remove_announcement(self, announcement_id: int) -> bool:
        return self._remove("announcements", announcement_id)

    def list_announcements(self) -> list[Announcement]:
        return [
            Announcement.model_validate(record)
            for record in self._document["announcements"]
        ]

    # -------------------------------------------------------------------------
    # Audit trail
    # -------------------------------------------------------------------------

    def append_event(self, event: AuditEvent) -> bool:
        self._document["audit"].append(event.model_dump(mode="json"))
        self._save()
        return True

    def _events(self) -> list[AuditEvent]:
        return [AuditEvent.model_validate(record) for record in self._document["audit"]]

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events()
            if e.entity_type == entity_type and e.entity_id == str(entity_id)
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
