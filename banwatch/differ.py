"""
Ban list snapshot differ.

Compares two decoded ban lists by record identity (uuid + name).
Order is ignored: a list that was rewritten in a different order with
the same entries produces an empty diff.
"""

from __future__ import annotations

from dataclasses import dataclass

from .records import BanRecord, BanSnapshot


@dataclass(frozen=True)
class SnapshotDiff:
    """Records gained and lost between two snapshots, each in file order."""

    added: tuple[BanRecord, ...] = ()
    removed: tuple[BanRecord, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        return {
            "added": [r.to_dict() for r in self.added],
            "removed": [r.to_dict() for r in self.removed],
        }


def diff_snapshots(previous: BanSnapshot, current: BanSnapshot) -> SnapshotDiff:
    """
    Compute added = current - previous and removed = previous - current.

    A record whose key is present on both sides is neither added nor
    removed, even if its other fields changed (a re-ban with a new reason).
    """
    previous_keys = previous.keys()
    current_keys = current.keys()
    return SnapshotDiff(
        added=tuple(r for r in current if r.key not in previous_keys),
        removed=tuple(r for r in previous if r.key not in current_keys),
    )
