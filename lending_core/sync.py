"""
Snapshot Merge Module

Combines a local ledger with one fetched from a remote store. On an id
conflict the local record wins; records only the remote knows are kept.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple, TypeVar
import logging

from .portfolio import LedgerSnapshot

logger = logging.getLogger("lending_core.sync")

T = TypeVar("T")


@dataclass(frozen=True)
class MergeReport:
    """Per-collection counts of a merge"""
    added: Dict[str, int] = field(default_factory=dict)       # Remote-only records kept
    conflicts: Dict[str, List[str]] = field(default_factory=dict)  # IDs where local won

    @property
    def total_added(self) -> int:
        return sum(self.added.values())

    @property
    def total_conflicts(self) -> int:
        return sum(len(ids) for ids in self.conflicts.values())


def merge_by_id(local: Iterable[T], remote: Iterable[T]) -> List[T]:
    """
    Union of two record lists keyed by ``id``

    Local records keep their order and win conflicts; remote-only records
    follow in remote order.
    """
    merged = list(local)
    seen = {item.id for item in merged}
    for item in remote:
        if item.id not in seen:
            merged.append(item)
            seen.add(item.id)
    return merged


def _merge_collection(
    name: str,
    local: Dict[str, T],
    remote: Dict[str, T],
    added: Dict[str, int],
    conflicts: Dict[str, List[str]]
) -> Dict[str, T]:
    merged = dict(local)
    added[name] = 0
    conflicts[name] = []
    for record_id, record in remote.items():
        if record_id in merged:
            if merged[record_id] != record:
                conflicts[name].append(record_id)
            continue
        merged[record_id] = record
        added[name] += 1
    return merged


def merge_snapshots(
    local: LedgerSnapshot,
    remote: LedgerSnapshot
) -> Tuple[LedgerSnapshot, MergeReport]:
    """
    Merge a remote snapshot into a copy of the local one

    Args:
        local: Authoritative snapshot
        remote: Snapshot fetched from the remote store

    Returns:
        (merged snapshot, MergeReport). Neither input is modified.
    """
    added: Dict[str, int] = {}
    conflicts: Dict[str, List[str]] = {}

    merged = LedgerSnapshot(
        borrowers=_merge_collection("borrowers", local.borrowers, remote.borrowers, added, conflicts),
        loans=_merge_collection("loans", local.loans, remote.loans, added, conflicts),
        payments=_merge_collection("payments", local.payments, remote.payments, added, conflicts),
        advances=_merge_collection("advances", local.advances, remote.advances, added, conflicts),
    )
    report = MergeReport(added=added, conflicts=conflicts)

    logger.info(
        f"Merged snapshots: {report.total_added} added from remote, "
        f"{report.total_conflicts} conflicts resolved locally"
    )
    return merged, report
