"""Duplicate reconciliation package."""

from alumni_ledger.reconcile.duplicates import (
    check_deletion,
    duplicate_key,
    find_duplicate_groups,
    select_keep_oldest,
)
from alumni_ledger.reconcile.classmates import (
    ClassmateMerge,
    find_duplicate_classmates,
    plan_classmate_merges,
    select_primary,
)

__all__ = [
    "check_deletion",
    "duplicate_key",
    "find_duplicate_groups",
    "select_keep_oldest",
    "ClassmateMerge",
    "find_duplicate_classmates",
    "plan_classmate_merges",
    "select_primary",
]
