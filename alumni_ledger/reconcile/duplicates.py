"""
Duplicate Reconciler

Finds ledger entries that are probably the same payment recorded twice
(typically the same bank export imported twice) and decides whether a
bulk deletion over them is safe.

Two entries are probable duplicates when they share payment type, amount
and transaction id (trimmed, compared case-insensitively). Entries
without a transaction id are never matched: without an external
reference two equal payments are just as likely to be genuine.

DESIGN DECISION: Nothing here deletes anything. The reconciler reads the
ledger, proposes, and judges; the caller performs the deletions one id at
a time, and only after check_deletion has accepted the selection. The one
rule that is never negotiable: every duplicate group keeps at least one
member.
"""

from collections.abc import Iterable
from typing import Optional

import structlog

from alumni_ledger.models.ledger import (
    DeletionDecision,
    DeletionRejection,
    DuplicateGroup,
    DuplicateKey,
    LedgerEntry,
    LedgerEntryCandidate,
)

logger = structlog.get_logger(__name__)


def duplicate_key(entry: LedgerEntryCandidate) -> Optional[DuplicateKey]:
    """
    Key shared by probable duplicates, or None for entries that never match.
    """
    transaction_id = (entry.transaction_id or "").strip()
    if not transaction_id:
        return None
    return DuplicateKey(
        payment_type=entry.payment_type,
        transaction_id=transaction_id.upper(),
        amount=entry.amount,
    )


def find_duplicate_groups(entries: Iterable[LedgerEntry]) -> list[DuplicateGroup]:
    """
    Group entries by duplicate key, keeping only groups of two or more.

    Groups come out in order of each key's first appearance; members keep
    their input order. Running this twice over an unchanged ledger gives
    the same result.
    """
    buckets: dict[DuplicateKey, list[LedgerEntry]] = {}
    for entry in entries:
        key = duplicate_key(entry)
        if key is None:
            continue
        buckets.setdefault(key, []).append(entry)

    groups = [
        DuplicateGroup(key=key, entries=members)
        for key, members in buckets.items()
        if len(members) >= 2
    ]
    logger.debug(
        "duplicate_groups_found",
        group_count=len(groups),
        entry_count=sum(len(group.entries) for group in groups),
    )
    return groups


def _oldest(group: DuplicateGroup) -> LedgerEntry:
    # Ids are assigned in insertion order, so the lower id was recorded first
    return min(group.entries, key=lambda entry: (entry.date, entry.id))


def select_keep_oldest(group: DuplicateGroup, selection: Iterable[int]) -> set[int]:
    """
    Add every member except the oldest to the selection.

    The oldest member is the one with the earliest date, ties going to the
    lowest id. Ids already selected stay selected, including the oldest's
    own id if the operator picked it by hand.
    """
    keep = _oldest(group)
    result = set(selection)
    result.update(entry.id for entry in group.entries if entry.id != keep.id)
    return result


def check_deletion(
    groups: Iterable[DuplicateGroup],
    selection: Iterable[int],
) -> DeletionDecision:
    """
    Judge a bulk deletion request over the given duplicate groups.

    Rejects an empty selection, and any selection that covers every member
    of at least one group. Never raises.
    """
    selected = set(selection)
    if not selected:
        return DeletionDecision(
            accepted=False,
            reason=DeletionRejection.NOTHING_SELECTED,
            message="Select at least one duplicate entry to delete.",
        )

    blocking = [
        group.label
        for group in groups
        if all(entry.id in selected for entry in group.entries)
    ]
    if blocking:
        return DeletionDecision(
            accepted=False,
            reason=DeletionRejection.WOULD_EMPTY_GROUP,
            blocking_groups=blocking,
            message=(
                "Cannot delete all entries of a duplicate group; keep at least "
                f"one entry in: {', '.join(blocking)}"
            ),
        )

    return DeletionDecision(
        accepted=True,
        message=f"{len(selected)} entries can be deleted.",
    )
