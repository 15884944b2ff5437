from __future__ import annotations

from dataclasses import replace

from banwatch.differ import diff_snapshots
from banwatch.records import BanRecord, BanSnapshot


def test_equal_snapshots_have_no_diff(bob: BanRecord, alice: BanRecord) -> None:
    prev = BanSnapshot([bob, alice])
    diff = diff_snapshots(prev, prev)
    assert diff.added == ()
    assert diff.removed == ()
    assert not diff


def test_reordered_snapshots_have_no_diff(bob: BanRecord, alice: BanRecord) -> None:
    assert not diff_snapshots(BanSnapshot([bob, alice]), BanSnapshot([alice, bob]))


def test_added_record(bob: BanRecord, alice: BanRecord) -> None:
    diff = diff_snapshots(BanSnapshot([bob]), BanSnapshot([bob, alice]))
    assert set(diff.added) == {alice}
    assert diff.removed == ()


def test_removed_record(bob: BanRecord, alice: BanRecord) -> None:
    diff = diff_snapshots(BanSnapshot([bob, alice]), BanSnapshot([bob]))
    assert diff.added == ()
    assert set(diff.removed) == {alice}


def test_ban_and_pardon_in_same_window(bob: BanRecord, alice: BanRecord) -> None:
    # Same size before and after: a size comparison would see nothing.
    diff = diff_snapshots(BanSnapshot([bob]), BanSnapshot([alice]))
    assert diff.added == (alice,)
    assert diff.removed == (bob,)


def test_changed_fields_with_same_key_are_not_a_change(bob: BanRecord) -> None:
    reban = replace(bob, reason="ban evasion", created="2018-07-01 00:00:00 +0000")
    assert not diff_snapshots(BanSnapshot([bob]), BanSnapshot([reban]))


def test_diff_follows_file_order() -> None:
    records = [BanRecord(uuid=f"u{i}", name=f"p{i}") for i in range(5)]
    diff = diff_snapshots(BanSnapshot(), BanSnapshot(reversed(records)))
    assert [r.name for r in diff.added] == ["p4", "p3", "p2", "p1", "p0"]


def test_to_dict(bob: BanRecord, alice: BanRecord) -> None:
    d = diff_snapshots(BanSnapshot([bob]), BanSnapshot([alice])).to_dict()
    assert d == {"added": [alice.to_dict()], "removed": [bob.to_dict()]}
