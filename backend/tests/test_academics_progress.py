from __future__ import annotations

from datetime import datetime

import pytest

from academics.domain import MaterialStatus
from academics.errors import NotFoundError, ValidationError
from academics.services import ProgressService
from utils.academic_fixtures import seeded_store


def test_update_week_material_sets_status_and_audit_fields():
    store = seeded_store()
    updated = ProgressService(store).update_week_material("S2", "BM001", 3, "done")

    assert updated.week3_material is MaterialStatus.DONE
    assert updated.updated_by == "coordinator"
    assert datetime.fromisoformat(updated.last_updated).tzinfo is not None
    record = next(r for r in store.load("progress") if r["studentId"] == "S2")
    assert record["week3Material"] == "done"
    assert record["updatedBy"] == "coordinator"


def test_update_week_material_can_mark_not_done_with_explicit_updater():
    svc = ProgressService(seeded_store())
    updated = svc.update_week_material("S1", "BM001", 1, "NOT_DONE", updated_by="T1")
    assert updated.week1_material is MaterialStatus.NOT_DONE
    assert updated.completed_weeks == 1
    assert updated.updated_by == "T1"


@pytest.mark.parametrize("week", [0, 5, "2", True, None])
def test_update_week_material_rejects_week_outside_range(week):
    with pytest.raises(ValidationError) as excinfo:
        ProgressService(seeded_store()).update_week_material("S1", "BM001", week, "done")
    assert excinfo.value.code == "invalid_week_number"


def test_update_week_material_rejects_unknown_status():
    with pytest.raises(ValidationError):
        ProgressService(seeded_store()).update_week_material("S1", "BM001", 2, "half done")


def test_update_week_material_unknown_pair_is_not_found():
    with pytest.raises(NotFoundError):
        ProgressService(seeded_store()).update_week_material("S1", "CS101", 2, "done")


def test_progress_reads():
    svc = ProgressService(seeded_store())
    assert [p.unit_code for p in svc.progress_for_student("S3")] == ["CS101"]
    assert sorted(p.student_id for p in svc.progress_for_unit("BM001")) == ["S1", "S2"]
