"""
Main Orchestrator for Alumni Ledger

This module ties together all the components and defines the
operator-facing flows for:
1. Entries (manual entry, member payment, edit, delete)
2. Import (spreadsheet -> normalize -> append)
3. Reconciliation (find duplicates -> select -> check -> delete one by one)
4. Directory (classmate profiles, announcements)
5. Reports (filter, totals, CSV export, email draft)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The import normalizer and the reconciler never touch storage; only
  this module appends and removes
- No duplicate is deleted before check_deletion accepts the selection
- Hand-typed entries are validated before they are stored
- Every change is audited

The acting user and class settings arrive in an explicit SessionContext.
A context without a user is a trusted system operator (scripts, imports
run from the command line); a signed-in non-admin is refused admin work.
"""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from alumni_ledger.agents import EmailDraft, ReportEmailAgent
from alumni_ledger.audit import AuditLogger, create_correlation_id
from alumni_ledger.config import get_settings
from alumni_ledger.importing import (
    UnparsableSourceError,
    normalize_rows,
    read_rows,
    read_rows_from_bytes,
)
from alumni_ledger.models.audit import AuditEventBuilder
from alumni_ledger.models.directory import (
    Announcement,
    AnnouncementType,
    Classmate,
    ClassmateStatus,
    SessionContext,
    User,
    UserRole,
)
from alumni_ledger.models.ledger import (
    DeletionDecision,
    DuplicateGroup,
    ImportResult,
    LedgerEntry,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
    Report,
    ReportFilter,
    ValidationResult,
    YearlyTotals,
)
from alumni_ledger.reconcile import (
    check_deletion,
    find_duplicate_groups,
    plan_classmate_merges,
    select_keep_oldest,
)
from alumni_ledger.reports import (
    build_report,
    class_balance,
    entries_for_member,
    export_csv,
    yearly_totals,
)
from alumni_ledger.services.storage import (
    AnnouncementStorageInterface,
    ClassmateStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    LedgerStorageInterface,
    LocalStore,
    NotFoundError,
    StorageError,
)
from alumni_ledger.validation import EntryValidator

logger = structlog.get_logger(__name__)


class LedgerService:
    """
    The process that owns the ledger store and calls the pure core.

    Flows:
    - Import: rows are normalized, then appended one candidate at a time
    - Reconciliation: groups are recomputed from the current ledger on
      every pass; the selection set belongs to the caller
    - Manual entry / payment / edit: validated first, refused on errors
    """

    def __init__(
        self,
        context: SessionContext,
        ledger_store: LedgerStorageInterface,
        classmate_store: ClassmateStorageInterface,
        announcement_store: AnnouncementStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntryValidator] = None,
        email_agent: Optional[ReportEmailAgent] = None,
    ):
        self._context = context
        self._ledger = ledger_store
        self._classmates = classmate_store
        self._announcements = announcement_store
        self._audit_logger = audit_logger or AuditLogger(actor=context.actor_name)
        self._validator = validator or EntryValidator(ledger_storage=ledger_store)
        self._email_agent = email_agent

    @property
    def context(self) -> SessionContext:
        return self._context

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def _actor(self) -> str:
        return self._context.actor_name

    def _require_admin(self, action: str) -> None:
        user = self._context.user
        if user is not None and not user.is_admin:
            raise PermissionError(f"Only admins can {action}")

    def _require_user(self, action: str) -> User:
        if self._context.user is None:
            raise PermissionError(f"Sign in to {action}")
        return self._context.user

    def ensure_classmate(self, name: str) -> Optional[Classmate]:
        """
        Register a classmate profile for a name the directory doesn't know.

        Names are compared case-insensitively. Returns the new profile, or
        None when one already existed.
        """
        wanted = name.strip().lower()
        if not wanted:
            return None
        for classmate in self._classmates.list_classmates():
            if classmate.normalized_name == wanted:
                return None
        classmate = self._classmates.add_classmate(name=name.strip())
        logger.info("classmate_auto_registered", classmate_id=classmate.id, name=classmate.name)
        return classmate

    def _rename_entries(self, old_name: str, new_name: str) -> int:
        """Point every entry recorded under old_name at new_name."""
        renamed = 0
        for entry in self._ledger.list_entries():
            if entry.classmate_name == old_name:
                self._ledger.update(entry.model_copy(update={"classmate_name": new_name}))
                renamed += 1
        return renamed

    def _store_validated(
        self,
        candidate: LedgerEntryCandidate,
    ) -> tuple[Optional[LedgerEntry], ValidationResult]:
        result = self._validator.validate(candidate)
        if result.has_errors:
            self._audit_logger.log_entry_rejected(
                [issue.model_dump() for issue in result.issues if issue.severity == "error"]
            )
            return None, result

        entry = self._ledger.append(candidate)
        self.ensure_classmate(entry.classmate_name)
        self._audit_logger.log_entry_added(
            entry_id=entry.id,
            classmate_name=entry.classmate_name,
            amount=str(entry.amount),
            payment_type=entry.payment_type.value,
        )
        return entry, result

    # =========================================================================
    # Entries
    # =========================================================================

    def list_entries(self) -> list[LedgerEntry]:
        return self._ledger.list_entries()

    def add_manual_entry(
        self,
        classmate_name: str,
        category: PaymentCategory,
        amount: Union[Decimal, str, int, float],
        description: Optional[str] = None,
        transaction_id: Optional[str] = None,
        entry_date: Optional[date] = None,
        attachment_url: Optional[str] = None,
        attachment_name: Optional[str] = None,
    ) -> tuple[Optional[LedgerEntry], ValidationResult]:
        """
        Record an entry typed in by an admin.

        The date defaults to today and the description to
        "<category> (Manual)". Nothing is stored when validation finds
        errors; the ValidationResult says why.
        """
        self._require_admin("add manual entries")
        category = PaymentCategory(category)
        candidate = LedgerEntryCandidate(
            date=entry_date or date.today(),
            description=description or f"{category.value} (Manual)",
            category=category,
            amount=Decimal(str(amount)),
            classmate_name=classmate_name,
            payment_type=PaymentType.MANUAL,
            transaction_id=transaction_id,
            attachment_url=attachment_url,
            attachment_name=attachment_name,
        )
        return self._store_validated(candidate)

    def record_payment(
        self,
        category: PaymentCategory,
        amount: Union[Decimal, str, int, float],
        description: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> tuple[Optional[LedgerEntry], ValidationResult]:
        """
        Record a payment made by the signed-in member.

        Raises:
            PermissionError: No signed-in user
            ValueError: Amount is not positive
        """
        user = self._require_user("make a payment")
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValueError("Payment amount must be greater than zero")

        category = PaymentCategory(category)
        candidate = LedgerEntryCandidate(
            date=date.today(),
            description=description or f"{category.value} Payment",
            category=category,
            amount=amount,
            classmate_name=user.name,
            payment_type=PaymentType.BANK_CARD,
            transaction_id=transaction_id,
        )
        return self._store_validated(candidate)

    def update_entry(
        self,
        entry_id: int,
        changes: dict[str, Any],
    ) -> tuple[Optional[LedgerEntry], ValidationResult]:
        """
        Edit fields of a stored entry. The id never changes.

        Raises:
            NotFoundError: No entry has this id
        """
        self._require_admin("edit entries")
        existing = self._ledger.get(entry_id)
        if existing is None:
            raise NotFoundError(f"Entry not found: {entry_id}")

        changes = {key: value for key, value in changes.items() if key != "id"}
        candidate = LedgerEntryCandidate.model_validate(
            {**existing.to_candidate().model_dump(), **changes}
        )
        result = self._validator.validate(candidate, exclude_id=entry_id)
        if result.has_errors:
            self._audit_logger.log_entry_rejected(
                [issue.model_dump() for issue in result.issues if issue.severity == "error"]
            )
            return None, result

        updated = self._ledger.update(LedgerEntry.from_candidate(entry_id, candidate))
        self.ensure_classmate(updated.classmate_name)
        self._audit_logger.log_entry_updated(entry_id, sorted(changes))
        return updated, result

    def delete_entry(self, entry_id: int) -> bool:
        self._require_admin("delete entries")
        removed = self._ledger.remove(entry_id)
        if removed:
            self._audit_logger.log_entry_deleted(entry_id)
        return removed

    def clear_entries(self) -> int:
        """Remove every entry from the ledger. Returns how many were removed."""
        self._require_admin("clear the ledger")
        removed = self._ledger.clear()
        self._audit_logger.log(AuditEventBuilder.ledger_cleared(removed, actor=self._actor))
        return removed

    # =========================================================================
    # Import
    # =========================================================================

    def import_rows(
        self,
        rows: Iterable[dict],
        source_name: Optional[str] = None,
    ) -> ImportResult:
        """
        Normalize rows and append every accepted candidate.

        Invalid rows are skipped and only counted. Names the directory
        doesn't know are registered as new classmates.
        """
        self._require_admin("import transactions")
        correlation_id = create_correlation_id()
        result = normalize_rows(rows, source_name=source_name)

        known = {c.normalized_name for c in self._classmates.list_classmates()}
        appended = 0
        try:
            for candidate in result.candidates:
                entry = self._ledger.append(candidate)
                appended += 1
                name_key = entry.classmate_name.lower()
                if name_key not in known:
                    self._classmates.add_classmate(name=entry.classmate_name)
                    known.add(name_key)
        except StorageError as e:
            self._audit_logger.log_error(
                error_type="import_storage_error",
                error_message=str(e),
                details={"source_name": source_name, "appended_count": appended},
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_import_completed(
            source_name=source_name,
            accepted_count=result.accepted_count,
            skipped_count=result.skipped_count,
            correlation_id=correlation_id,
        )
        return result

    def _import_source(self, source_name: str, read) -> ImportResult:
        try:
            rows = read()
        except UnparsableSourceError as e:
            self._audit_logger.log_import_failed(
                source_name=source_name,
                error_message=str(e),
                correlation_id=create_correlation_id(),
            )
            raise
        return self.import_rows(rows, source_name=source_name)

    def import_file(self, path: Union[str, Path]) -> ImportResult:
        """
        Import a CSV or Excel file from disk.

        Raises:
            UnparsableSourceError: The file could not be read; nothing imported
        """
        self._require_admin("import transactions")
        path = Path(path)
        return self._import_source(path.name, lambda: read_rows(path))

    def import_upload(self, data: bytes, filename: str) -> ImportResult:
        """Import an uploaded spreadsheet. See import_file."""
        self._require_admin("import transactions")
        return self._import_source(filename, lambda: read_rows_from_bytes(data, filename))

    # =========================================================================
    # Duplicate reconciliation
    # =========================================================================

    def find_duplicates(self) -> list[DuplicateGroup]:
        """Recompute duplicate groups from the current ledger."""
        groups = find_duplicate_groups(self._ledger.list_entries())
        self._audit_logger.log_duplicates_scanned(
            group_count=len(groups),
            entry_count=sum(len(group.entries) for group in groups),
            correlation_id=create_correlation_id(),
        )
        return groups

    def select_keep_oldest(
        self,
        groups: Iterable[DuplicateGroup],
        selection: Iterable[int] = (),
    ) -> set[int]:
        """Apply keep-oldest to every group, adding to the selection."""
        selected = set(selection)
        for group in groups:
            selected = select_keep_oldest(group, selected)
        return selected

    def delete_duplicates(self, selection: Iterable[int]) -> DeletionDecision:
        """
        Delete the selected duplicates if the selection is safe.

        Groups are recomputed from the ledger as it is now, so a stale
        view can't be used to empty a group. On acceptance each id is
        removed individually.
        """
        self._require_admin("delete duplicates")
        selected = sorted(set(selection))
        correlation_id = create_correlation_id()
        groups = find_duplicate_groups(self._ledger.list_entries())
        decision = check_deletion(groups, selected)

        if not decision.accepted:
            self._audit_logger.log_deletion_rejected(
                reason=decision.reason.value,
                selected_ids=selected,
                blocking_groups=decision.blocking_groups,
                correlation_id=correlation_id,
            )
            return decision

        deleted = []
        for entry_id in selected:
            if self._ledger.remove(entry_id):
                deleted.append(entry_id)
                self._audit_logger.log_entry_deleted(entry_id, correlation_id=correlation_id)
        self._audit_logger.log_duplicates_deleted(deleted, correlation_id=correlation_id)
        return decision

    # =========================================================================
    # Profile & classmates
    # =========================================================================

    def _profile_for(self, user: User) -> Optional[Classmate]:
        classmates = self._classmates.list_classmates()
        if user.email:
            for classmate in classmates:
                if classmate.email and classmate.email.lower() == user.email.lower():
                    return classmate
        for classmate in classmates:
            if classmate.name == user.name:
                return classmate
        return None

    def update_profile(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        """
        Update the signed-in user's profile.

        A new name is carried over to every entry recorded under the old
        one. Returns the updated user, which also replaces the session's.
        """
        user = self._require_user("update your profile")
        changes: dict[str, Any] = {}
        if name and name.strip() and name.strip() != user.name:
            changes["name"] = name.strip()
        if email:
            changes["email"] = email.strip()
        if address is not None:
            changes["address"] = address
        if phone is not None:
            changes["phone"] = phone

        profile = self._profile_for(user)
        if profile is None:
            profile = self._classmates.add_classmate(
                name=changes.get("name", user.name),
                role=user.role,
                email=changes.get("email", user.email) or None,
                address=changes.get("address", user.address),
                phone=changes.get("phone", user.phone),
            )
        else:
            self._classmates.update_classmate(profile.model_copy(update=changes))

        renamed = 0
        if "name" in changes:
            renamed = self._rename_entries(user.name, changes["name"])

        updated_user = user.model_copy(update=changes)
        self._context = self._context.model_copy(update={"user": updated_user})
        self._audit_logger.log(AuditEventBuilder.profile_updated(
            user_id=user.id,
            changed_fields=sorted(changes),
            renamed_entries=renamed,
            actor=updated_user.name,
        ))
        return updated_user

    def list_classmates(self) -> list[Classmate]:
        """Profiles sorted by name."""
        return sorted(self._classmates.list_classmates(), key=lambda c: c.name.lower())

    def update_classmate(self, classmate_id: int, changes: dict[str, Any]) -> Classmate:
        """
        Raises:
            NotFoundError: No profile has this id
        """
        self._require_admin("manage classmates")
        existing = self._classmates.get_classmate(classmate_id)
        if existing is None:
            raise NotFoundError(f"Classmate not found: {classmate_id}")

        changes = {key: value for key, value in changes.items() if key != "id"}
        updated = Classmate.model_validate({**existing.model_dump(), **changes})
        self._classmates.update_classmate(updated)
        self._audit_logger.log(AuditEventBuilder.classmate_updated(
            classmate_id, sorted(changes), actor=self._actor,
        ))
        return updated

    def set_classmates_status(
        self,
        classmate_ids: Iterable[int],
        status: ClassmateStatus,
    ) -> list[Classmate]:
        """Activate or deactivate several profiles at once. Unknown ids are ignored."""
        self._require_admin("manage classmates")
        updated = []
        for classmate_id in classmate_ids:
            classmate = self._classmates.get_classmate(classmate_id)
            if classmate is None:
                continue
            updated.append(self._classmates.update_classmate(
                classmate.model_copy(update={"status": ClassmateStatus(status)})
            ))
        return updated

    def delete_classmates(self, classmate_ids: Iterable[int]) -> Optional[str]:
        """
        Delete profiles that no entry refers to.

        Returns None on success, or the message explaining why nothing
        was deleted.
        """
        self._require_admin("manage classmates")
        ids = list(classmate_ids)
        names_in_use = {entry.classmate_name for entry in self._ledger.list_entries()}

        for classmate_id in ids:
            classmate = self._classmates.get_classmate(classmate_id)
            if classmate is not None and classmate.name in names_in_use:
                return (
                    f"Cannot delete classmate '{classmate.name}' because they have "
                    "associated transactions. Please re-assign or delete transactions first."
                )

        deleted = [cid for cid in ids if self._classmates.remove_classmate(cid)]
        self._audit_logger.log(AuditEventBuilder.classmates_deleted(deleted, actor=self._actor))
        return None

    def merge_classmates(self, target_id: int, source_ids: Iterable[int]) -> Classmate:
        """
        Fold source profiles into the target profile.

        Entries recorded under a source's name are reassigned to the
        target's name, then the sources are deleted.

        Raises:
            NotFoundError: Target profile doesn't exist
        """
        self._require_admin("manage classmates")
        target = self._classmates.get_classmate(target_id)
        if target is None:
            raise NotFoundError(f"Target classmate not found: {target_id}")

        merged_ids = []
        reassigned = 0
        for source_id in source_ids:
            if source_id == target_id:
                continue
            source = self._classmates.get_classmate(source_id)
            if source is None:
                continue
            if source.name != target.name:
                reassigned += self._rename_entries(source.name, target.name)
            self._classmates.remove_classmate(source_id)
            merged_ids.append(source_id)

        self._audit_logger.log(AuditEventBuilder.classmates_merged(
            target_id=target_id,
            source_ids=merged_ids,
            reassigned_entries=reassigned,
            actor=self._actor,
        ))
        return target

    def reconcile_duplicate_classmates(self) -> int:
        """
        Merge every set of profiles that share a name (ignoring case and
        surrounding spaces). Returns the number of profiles removed.
        """
        self._require_admin("manage classmates")
        removed = 0
        for plan in plan_classmate_merges(self._classmates.list_classmates()):
            self.merge_classmates(plan.target.id, [source.id for source in plan.sources])
            removed += len(plan.sources)
        return removed

    # =========================================================================
    # Announcements
    # =========================================================================

    def post_announcement(
        self,
        title: str,
        content: str,
        type: AnnouncementType = AnnouncementType.TEXT,
        url: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Announcement:
        """Post an announcement, timestamped now."""
        self._require_admin("post announcements")
        announcement = self._announcements.add_announcement(
            title=title,
            content=content,
            date=datetime.utcnow(),
            type=AnnouncementType(type),
            url=url,
            image_url=image_url,
        )
        self._audit_logger.log(AuditEventBuilder.announcement_posted(
            announcement.id, announcement.title, actor=self._actor,
        ))
        return announcement

    def delete_announcement(self, announcement_id: int) -> bool:
        self._require_admin("delete announcements")
        removed = self._announcements.remove_announcement(announcement_id)
        if removed:
            self._audit_logger.log(AuditEventBuilder.announcement_deleted(
                announcement_id, actor=self._actor,
            ))
        return removed

    def list_announcements(self) -> list[Announcement]:
        """Newest first."""
        return sorted(
            self._announcements.list_announcements(),
            key=lambda a: (a.date, a.id),
            reverse=True,
        )

    # =========================================================================
    # Reports
    # =========================================================================

    def build_report(self, filters: Optional[ReportFilter] = None) -> Report:
        return build_report(self._ledger.list_entries(), filters)

    def class_balance(self) -> Decimal:
        return class_balance(self._ledger.list_entries())

    def yearly_totals(self) -> list[YearlyTotals]:
        return yearly_totals(self._ledger.list_entries())

    def my_entries(self) -> list[LedgerEntry]:
        """Entries recorded under the signed-in member's name."""
        user = self._require_user("view your transactions")
        return entries_for_member(self._ledger.list_entries(), user.name)

    def export_report(
        self,
        destination: Union[str, Path],
        filters: Optional[ReportFilter] = None,
    ) -> int:
        """Write the filtered report to CSV. Returns the number of entries."""
        report = self.build_report(filters)
        count = export_csv(report.entries, destination)
        self._audit_logger.log(AuditEventBuilder.report_exported(
            count, str(destination), actor=self._actor,
        ))
        return count

    def draft_report_email(
        self,
        recipients: Iterable[str],
        filters: Optional[ReportFilter] = None,
    ) -> EmailDraft:
        """
        Draft an email sharing the filtered report.

        Raises:
            ValueError: No valid recipient, or the report is empty
        """
        if self._email_agent is None:
            try:
                self._email_agent = ReportEmailAgent()
            except Exception as e:
                self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                )
                raise

        report = self.build_report(filters)
        draft = self._email_agent.draft(
            recipients=recipients,
            entries=report.entries,
            summary=report.summary,
            filters=report.filters,
        )
        self._audit_logger.log(AuditEventBuilder.report_email_drafted(
            recipient_count=len(draft.recipients),
            entry_count=draft.entry_count,
            used_llm=draft.used_llm,
            actor=self._actor,
        ))
        return draft


def apply_super_admin(user: Optional[User], super_admin_email: Optional[str]) -> Optional[User]:
    """The configured super-admin account is always treated as an Admin."""
    if user is None or not super_admin_email or not user.email:
        return user
    if user.email.lower() != super_admin_email.strip().lower() or user.is_admin:
        return user
    logger.info("super_admin_promoted", user_id=user.id)
    return user.model_copy(update={"role": UserRole.ADMIN})


def create_app_components(
    context: Optional[SessionContext] = None,
    use_storage: bool = True,
) -> LedgerService:
    """
    Factory function to create the ledger service.

    Args:
        context: Session context; defaults to a system session with the
                 configured class subtitle.
        use_storage: Whether to persist. Set to False for an in-memory
                     ledger (testing, dry runs).

    Returns:
        A ready LedgerService
    """
    app_settings = get_settings().app
    context = context or SessionContext(class_subtitle=app_settings.class_subtitle)
    context = context.model_copy(update={
        "user": apply_super_admin(context.user, app_settings.super_admin_email),
    })

    if not use_storage:
        store = LocalStore()
        return LedgerService(
            context=context,
            ledger_store=store,
            classmate_store=store,
            announcement_store=store,
        )

    store = LocalStore(app_settings.local_store_path)
    ledger_store: LedgerStorageInterface = store
    audit_logger = AuditLogger(store, actor=context.actor_name)

    if app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            ledger_store = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(
                GoogleSheetsAuditStorage(sheets_client),
                actor=context.actor_name,
            )
        except Exception as e:
            # Storage not configured - continue with the local document
            logger.warning("google_sheets_unavailable", error=str(e))
            audit_logger.log_external_service_error(
                service="google_sheets",
                error_message=str(e),
            )

    return LedgerService(
        context=context,
        ledger_store=ledger_store,
        classmate_store=store,
        announcement_store=store,
        audit_logger=audit_logger,
    )
