"""
Classmate Profile Reconciliation

Profiles are created automatically whenever an entry names someone new,
so the directory collects near-copies: "Jane Doe" from a manual entry and
"jane doe " from an import. Profiles whose names match after trimming and
lowercasing are merged into one primary profile.

Primary profile priority:
1. An Admin profile
2. A profile with an email address (it can sign in)
3. The earliest profile (lowest id)
"""

from collections.abc import Iterable
from typing import NamedTuple

from alumni_ledger.models.directory import Classmate, UserRole


class ClassmateMerge(NamedTuple):
    """One planned merge: sources are folded into target."""

    target: Classmate
    sources: list[Classmate]


def find_duplicate_classmates(classmates: Iterable[Classmate]) -> list[list[Classmate]]:
    """Group profiles by normalized name, keeping groups of two or more."""
    buckets: dict[str, list[Classmate]] = {}
    for classmate in classmates:
        buckets.setdefault(classmate.normalized_name, []).append(classmate)
    return [members for members in buckets.values() if len(members) >= 2]


def select_primary(group: list[Classmate]) -> Classmate:
    def priority(classmate: Classmate) -> tuple:
        return (
            classmate.role != UserRole.ADMIN,
            not classmate.email,
            classmate.id,
        )

    return min(group, key=priority)


def plan_classmate_merges(classmates: Iterable[Classmate]) -> list[ClassmateMerge]:
    """Work out every merge needed to leave one profile per name."""
    plans = []
    for group in find_duplicate_classmates(classmates):
        target = select_primary(group)
        sources = [c for c in group if c.id != target.id]
        plans.append(ClassmateMerge(target=target, sources=sources))
    return plans
