"""
Audit Logger

DESIGN DECISION: Every change to the class ledger is logged.
This provides:
1. Complete traceability of imports, edits and deletions
2. Debugging capability when a spreadsheet import misbehaves
3. Accountability towards the class

The audit logger:
- Runs synchronously, in the same single-threaded flow as the ledger
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from alumni_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from alumni_ledger.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        actor: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            actor: Default actor name stamped on events that carry none.
        """
        self._storage = storage
        self._actor = actor
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.actor is None and self._actor is not None:
            event = event.model_copy(update={"actor": self._actor})

        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_entry_added(
        self,
        entry_id: int,
        classmate_name: str,
        amount: str,
        payment_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new ledger entry."""
        event = AuditEventBuilder.entry_added(
            entry_id=entry_id,
            classmate_name=classmate_name,
            amount=amount,
            payment_type=payment_type,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_entry_updated(self, entry_id: int, changed_fields: list[str]) -> None:
        event = AuditEventBuilder.entry_updated(
            entry_id=entry_id,
            changed_fields=changed_fields,
        )
        self.log(event)

    def log_entry_deleted(
        self,
        entry_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_entry_rejected(self, issues: list[dict]) -> None:
        """Log a manual entry refused by validation."""
        self.log(AuditEventBuilder.entry_rejected(issues=issues))

    def log_import_completed(
        self,
        source_name: Optional[str],
        accepted_count: int,
        skipped_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a finished spreadsheet import."""
        event = AuditEventBuilder.import_completed(
            source_name=source_name,
            accepted_count=accepted_count,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_import_failed(
        self,
        source_name: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a spreadsheet that could not be read."""
        event = AuditEventBuilder.import_failed(
            source_name=source_name,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_duplicates_scanned(
        self,
        group_count: int,
        entry_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.duplicates_scanned(
            group_count=group_count,
            entry_count=entry_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_deletion_rejected(
        self,
        reason: str,
        selected_ids: list[int],
        blocking_groups: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a bulk duplicate deletion that was refused."""
        event = AuditEventBuilder.deletion_rejected(
            reason=reason,
            selected_ids=selected_ids,
            blocking_groups=blocking_groups,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_duplicates_deleted(
        self,
        deleted_ids: list[int],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.duplicates_deleted(
            deleted_ids=deleted_ids,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new operator action (e.g., a spreadsheet
    import). Pass it through all subsequent operations.
    """
    return uuid4()
