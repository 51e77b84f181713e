"""
Audit Models for Alumni Ledger

Every change to the class ledger is logged for audit purposes.
This provides:
1. Traceability of who added, edited or deleted what
2. Debugging information when an import goes wrong
3. Accountability towards the class for its money

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger entries
    ENTRY_ADDED = "entry_added"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_REJECTED = "entry_rejected"
    LEDGER_CLEARED = "ledger_cleared"

    # Spreadsheet import
    IMPORT_COMPLETED = "import_completed"
    IMPORT_FAILED = "import_failed"

    # Duplicate reconciliation
    DUPLICATES_SCANNED = "duplicates_scanned"
    DELETION_REJECTED = "deletion_rejected"
    DUPLICATES_DELETED = "duplicates_deleted"

    # Directory
    ANNOUNCEMENT_POSTED = "announcement_posted"
    ANNOUNCEMENT_DELETED = "announcement_deleted"
    PROFILE_UPDATED = "profile_updated"
    CLASSMATE_UPDATED = "classmate_updated"
    CLASSMATES_MERGED = "classmates_merged"
    CLASSMATES_DELETED = "classmates_deleted"

    # Reporting
    REPORT_EXPORTED = "report_exported"
    REPORT_EMAIL_DRAFTED = "report_email_drafted"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'import', 'classmate')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all deletions of one reconciliation)"
    )

    # Who did it
    actor: Optional[str] = Field(
        default=None,
        description="Name of the acting user"
    )

    description: str
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "actor": self.actor,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, actor, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.actor or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added(entry_id, name, amount, actor)
        event = AuditEventBuilder.duplicates_deleted(ids, correlation_id, actor)
    """

    @staticmethod
    def entry_added(
        entry_id: int,
        classmate_name: str,
        amount: str,
        payment_type: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            actor=actor,
            description=f"Entry added: {classmate_name} ${amount}",
            details={
                "classmate_name": classmate_name,
                "amount": amount,
                "payment_type": payment_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        entry_id: int,
        changed_fields: list[str],
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="entry",
            entity_id=str(entry_id),
            actor=actor,
            description=f"Entry {entry_id} updated",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: int,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            actor=actor,
            description=f"Entry {entry_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        issues: list[dict],
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            actor=actor,
            description=f"Entry rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def ledger_cleared(
        removed_count: int,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            actor=actor,
            description=f"Ledger cleared ({removed_count} entries removed)",
            details={"removed_count": removed_count},
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        source_name: Optional[str],
        accepted_count: int,
        skipped_count: int,
        correlation_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            entity_type="import",
            correlation_id=correlation_id,
            actor=actor,
            description=(
                f"Imported {accepted_count} entries from {source_name or 'rows'} "
                f"({skipped_count} skipped)"
            ),
            details={
                "source_name": source_name,
                "accepted_count": accepted_count,
                "skipped_count": skipped_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_failed(
        source_name: Optional[str],
        error_message: str,
        correlation_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="import",
            correlation_id=correlation_id,
            actor=actor,
            description=f"Import failed: {source_name or 'rows'}",
            error_message=error_message,
            details={"source_name": source_name},
            is_user_action=True,
        )

    @staticmethod
    def duplicates_scanned(
        group_count: int,
        entry_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATES_SCANNED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Found {group_count} duplicate groups covering {entry_count} entries",
            details={
                "group_count": group_count,
                "entry_count": entry_count,
            },
        )

    @staticmethod
    def deletion_rejected(
        reason: str,
        selected_ids: list[int],
        blocking_groups: list[str],
        correlation_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            actor=actor,
            description=f"Duplicate deletion rejected: {reason}",
            details={
                "reason": reason,
                "selected_ids": selected_ids,
                "blocking_groups": blocking_groups,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicates_deleted(
        deleted_ids: list[int],
        correlation_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATES_DELETED,
            entity_type="ledger",
            correlation_id=correlation_id,
            actor=actor,
            description=f"Deleted {len(deleted_ids)} duplicate entries",
            details={"deleted_ids": deleted_ids},
            is_user_action=True,
        )

    @staticmethod
    def announcement_posted(
        announcement_id: int,
        title: str,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANNOUNCEMENT_POSTED,
            entity_type="announcement",
            entity_id=str(announcement_id),
            actor=actor,
            description=f"Announcement posted: {title}",
            is_user_action=True,
        )

    @staticmethod
    def announcement_deleted(
        announcement_id: int,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANNOUNCEMENT_DELETED,
            entity_type="announcement",
            entity_id=str(announcement_id),
            actor=actor,
            description=f"Announcement {announcement_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(
        user_id: str,
        changed_fields: list[str],
        renamed_entries: int,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="user",
            entity_id=user_id,
            actor=actor,
            description=f"Profile updated ({', '.join(changed_fields) or 'no changes'})",
            details={
                "changed_fields": changed_fields,
                "renamed_entries": renamed_entries,
            },
            is_user_action=True,
        )

    @staticmethod
    def classmate_updated(
        classmate_id: int,
        changed_fields: list[str],
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSMATE_UPDATED,
            entity_type="classmate",
            entity_id=str(classmate_id),
            actor=actor,
            description=f"Classmate {classmate_id} updated",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def classmates_merged(
        target_id: int,
        source_ids: list[int],
        reassigned_entries: int,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSMATES_MERGED,
            entity_type="classmate",
            entity_id=str(target_id),
            actor=actor,
            description=f"Merged {len(source_ids)} profiles into classmate {target_id}",
            details={
                "source_ids": source_ids,
                "reassigned_entries": reassigned_entries,
            },
            is_user_action=True,
        )

    @staticmethod
    def classmates_deleted(
        classmate_ids: list[int],
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSMATES_DELETED,
            entity_type="classmate",
            actor=actor,
            description=f"Deleted {len(classmate_ids)} classmate profiles",
            details={"classmate_ids": classmate_ids},
            is_user_action=True,
        )

    @staticmethod
    def report_exported(
        row_count: int,
        destination: str,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="report",
            actor=actor,
            description=f"Exported {row_count} entries to {destination}",
            details={"row_count": row_count, "destination": destination},
            is_user_action=True,
        )

    @staticmethod
    def report_email_drafted(
        recipient_count: int,
        entry_count: int,
        used_llm: bool,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EMAIL_DRAFTED,
            entity_type="report",
            actor=actor,
            description=f"Report email drafted for {recipient_count} recipients",
            details={
                "recipient_count": recipient_count,
                "entry_count": entry_count,
                "used_llm": used_llm,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
