from __future__ import annotations

import dataclasses

import pytest

from src.site_attendance.site_attendance.attendance.model import (
    AttendanceEntry,
    DesiredRow,
    ExternalRow,
    RosterRow,
)
from src.site_attendance.site_attendance.attendance.reconciler import EntryReconciler
from src.site_attendance.site_attendance.core.exceptions import InvalidWorkerIdError

from tests.fakes import DAY, SITE, W1, W2, W3, InMemoryAttendance


def roster(worker_id, contractor_id="C0001", **kw):
    return DesiredRow(identity=RosterRow(worker_id=worker_id, contractor_id=contractor_id), **kw)


def external(name, memo=None, **kw):
    return DesiredRow(identity=ExternalRow(external_identity=name.lower(), display_name=name, memo=memo), **kw)


@pytest.fixture
def reconciler(codec, id_factory):
    return EntryReconciler(codec, id_factory=id_factory)


def test_first_save_creates_everything(reconciler):
    plan = reconciler.plan(SITE, DAY, [roster(W1), external("Yamada", "cleanup"), DesiredRow()], [], actor_id="u1")

    assert plan.delete_ids == ()
    assert [e.worker_id for e in plan.roster_upserts] == [W1]
    ext = plan.external_upserts[0]
    assert ext.external_identity == "yamada"
    assert ext.memo == "ネクサス / Yamada / cleanup"
    assert ext.worker_id is None and ext.contractor_id is None
    assert {e.entry_id for e in plan.upserts} == {"new-1", "new-2"}
    assert all(e.created_by == "u1" for e in plan.upserts)
    assert not plan.clear_day


def test_duplicate_worker_rows_last_one_wins(reconciler):
    rows = [roster(W1, memo="first"), roster(W2), roster(W1, memo="second")]
    plan = reconciler.plan(SITE, DAY, rows, [])

    assert [e.worker_id for e in plan.roster_upserts] == [W2, W1]
    assert [e.memo for e in plan.roster_upserts if e.worker_id == W1] == ["second"]


def test_saving_same_day_twice_is_idempotent(reconciler):
    store = InMemoryAttendance()
    rows = [roster(W1, work_type_id="wt1", memo="型枠"), external("Yamada", "cleanup")]

    store.apply_day_plan(reconciler.plan(SITE, DAY, rows, store.list_day(SITE, DAY)))
    before = dict(store.entries)

    second = reconciler.plan(SITE, DAY, rows, store.list_day(SITE, DAY))
    store.apply_day_plan(second)

    assert second.delete_ids == ()
    assert sorted(second.unchanged_ids) == sorted(before)
    assert store.entries == before


def test_rows_loaded_with_entry_id_keep_their_ids(reconciler):
    previous = [
        AttendanceEntry("e1", DAY, SITE, "C0001", W1, None, memo="old"),
        AttendanceEntry("e2", DAY, SITE, "C0001", W2, None),
    ]
    plan = reconciler.plan(SITE, DAY, [roster(W1, entry_id="e1", memo="new")], previous)

    assert plan.delete_ids == ("e2",)
    assert [(e.entry_id, e.memo) for e in plan.roster_upserts] == [("e1", "new")]
    assert plan.unchanged_ids == ()


def test_changed_worker_replaces_entry(reconciler):
    previous = [AttendanceEntry("e1", DAY, SITE, "C0001", W1, None)]
    plan = reconciler.plan(SITE, DAY, [roster(W3, entry_id="e1")], previous)

    assert plan.delete_ids == ("e1",)
    assert plan.roster_upserts[0].entry_id == "new-1"
    assert plan.roster_upserts[0].worker_id == W3


def test_changed_external_memo_replaces_entry(reconciler, codec):
    previous = [AttendanceEntry("x1", DAY, SITE, None, None, "yamada", memo=codec.encode("Yamada", "cleanup"))]
    plan = reconciler.plan(SITE, DAY, [external("Yamada", "painting", entry_id="x1")], previous)

    assert plan.delete_ids == ("x1",)
    assert plan.external_upserts[0].memo == "ネクサス / Yamada / painting"


def test_reloaded_external_row_with_slash_in_memo_is_unchanged(reconciler, codec):
    stored = codec.encode("山田", "5/10 片付け")
    previous = [AttendanceEntry("e1", DAY, SITE, None, None, "山田", memo=stored)]

    loaded = codec.decode(stored)
    plan = reconciler.plan(SITE, DAY, [external(loaded.name, loaded.memo, entry_id="e1")], previous)

    assert plan.delete_ids == ()
    assert plan.unchanged_ids == ("e1",)
    assert [(e.entry_id, e.memo) for e in plan.external_upserts] == [("e1", "ネクサス / 山田 / 5/10 片付け")]


def test_empty_submission_clears_the_day(reconciler):
    store = InMemoryAttendance(
        [
            AttendanceEntry("e1", DAY, SITE, "C0001", W1, None),
            AttendanceEntry("e2", DAY, SITE, None, None, "yamada", memo="ネクサス / Yamada"),
        ]
    )
    plan = reconciler.plan(SITE, DAY, [DesiredRow(), DesiredRow()], store.list_day(SITE, DAY))

    assert plan.clear_day
    assert set(plan.delete_ids) == {"e1", "e2"}
    store.apply_day_plan(plan)
    assert store.list_day(SITE, DAY) == []


def test_invalid_worker_id_rejected_before_planning(reconciler):
    with pytest.raises(InvalidWorkerIdError) as excinfo:
        reconciler.plan(SITE, DAY, [roster("not-a-uuid"), roster(W1), roster("not-a-uuid")], [])
    assert excinfo.value.worker_ids == ["not-a-uuid"]


def test_previous_entry_matched_by_natural_key_without_entry_id(reconciler):
    previous = [AttendanceEntry("e1", DAY, SITE, "C0001", W1, None, work_type_id="wt1")]
    plan = reconciler.plan(SITE, DAY, [roster(W1, work_type_id="wt2")], previous)

    assert plan.delete_ids == ()
    assert plan.roster_upserts[0].entry_id == "e1"
    assert plan.roster_upserts[0].work_type_id == "wt2"


def test_plan_does_not_mutate_previous(reconciler):
    previous = [AttendanceEntry("e1", DAY, SITE, "C0001", W1, None)]
    snapshot = [dataclasses.replace(e) for e in previous]
    reconciler.plan(SITE, DAY, [roster(W2)], previous)
    assert previous == snapshot
