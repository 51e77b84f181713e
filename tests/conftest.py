"""
Shared fixtures.

Everything runs against an in-memory LocalStore. No network access:
Google Sheets is never contacted and Gemini is replaced by fakes.
"""

from datetime import date
from decimal import Decimal

import pytest

from alumni_ledger.audit import AuditLogger
from alumni_ledger.config import AppSettings
from alumni_ledger.models.directory import SessionContext, User, UserRole
from alumni_ledger.models.ledger import (
    LedgerEntry,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
)
from alumni_ledger.orchestrator import LedgerService
from alumni_ledger.services.storage import LocalStore
from alumni_ledger.validation import EntryValidator


@pytest.fixture
def app_settings():
    return AppSettings(
        max_entry_amount=10000.0,
        future_date_tolerance_days=7,
        report_email_max_rows=50,
    )


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def make_entry():
    """Factory for stored-looking entries with sensible defaults."""
    def _make(
        entry_id,
        entry_date=date(2024, 1, 1),
        amount="50.00",
        transaction_id="ABC123",
        payment_type=PaymentType.BANK_CARD,
        category=PaymentCategory.DUES,
        classmate_name="Jane Doe",
        description="Dues",
    ):
        return LedgerEntry(
            id=entry_id,
            date=entry_date,
            description=description,
            category=category,
            amount=Decimal(amount),
            classmate_name=classmate_name,
            payment_type=payment_type,
            transaction_id=transaction_id,
        )
    return _make


@pytest.fixture
def make_candidate():
    def _make(
        classmate_name="Jane Doe",
        amount="50.00",
        category=PaymentCategory.DUES,
        entry_date=date(2024, 1, 1),
        transaction_id=None,
        payment_type=PaymentType.MANUAL,
    ):
        return LedgerEntryCandidate(
            date=entry_date,
            description=f"{category.value} (Manual)",
            category=category,
            amount=Decimal(amount),
            classmate_name=classmate_name,
            payment_type=payment_type,
            transaction_id=transaction_id,
        )
    return _make


@pytest.fixture
def admin_user():
    return User(id="admin-1", name="Alice Admin", email="alice@example.com", role=UserRole.ADMIN)


@pytest.fixture
def member_user():
    return User(id="member-1", name="Bob Member", email="bob@example.com", role=UserRole.STANDARD)


@pytest.fixture
def make_service(store, app_settings):
    """Build a LedgerService over the shared in-memory store."""
    def _make(user=None, email_agent=None):
        context = SessionContext(user=user)
        return LedgerService(
            context=context,
            ledger_store=store,
            classmate_store=store,
            announcement_store=store,
            audit_logger=AuditLogger(store, actor=context.actor_name),
            validator=EntryValidator(ledger_storage=store, settings=app_settings),
            email_agent=email_agent,
        )
    return _make


@pytest.fixture
def service(make_service, admin_user):
    return make_service(user=admin_user)
