"""Entry validation package."""

from alumni_ledger.validation.validator import EntryValidator

__all__ = ["EntryValidator"]
