"""
Submission lifecycle: identity, transitions and grading.
"""
from __future__ import annotations

import pytest

from academics.domain import SubmissionStatus
from academics.errors import ConflictError, NotFoundError, ValidationError
from academics.services import SubmissionsService
from academics.services.submissions import transition_allowed
from academics.store import InMemoryRecordStore
from utils.academic_fixtures import sample_records, seeded_store


def _draft(student_id="S1", assignment_id="A2", submission_id="SUB9", status="draft", **extra):
    record = {
        "submissionId": submission_id,
        "studentId": student_id,
        "assignmentId": assignment_id,
        "submissionStatus": status,
        "submissionName": "work.pdf",
    }
    record.update(extra)
    return record


def test_upsert_creates_then_updates_same_pair():
    store = InMemoryRecordStore()
    svc = SubmissionsService(store)

    first = svc.upsert_submission(_draft())
    second = svc.upsert_submission(_draft(status="submitted", submissionName="final.pdf"))

    assert first.action == "created"
    assert second.action == "updated"
    stored = store.load("submissions")
    assert len(stored) == 1
    assert stored[0]["submissionName"] == "final.pdf"
    assert stored[0]["submissionStatus"] == "submitted"
    assert stored[0]["submittedAt"]


def test_upsert_keeps_pair_unique_across_many_writes():
    svc = SubmissionsService(InMemoryRecordStore())
    for _ in range(3):
        svc.upsert_submission(_draft())
        svc.upsert_submission(_draft(student_id="S2", submission_id="SUB10"))
    pairs = [(s["studentId"], s["assignmentId"]) for s in svc.store.load("submissions")]
    assert sorted(pairs) == [("S1", "A2"), ("S2", "A2")]


def test_upsert_reuses_existing_submission_id_when_missing():
    svc = SubmissionsService(InMemoryRecordStore())
    svc.upsert_submission(_draft())
    result = svc.upsert_submission(_draft(submission_id=""))
    assert result.record.submission_id == "SUB9"


@pytest.mark.parametrize(
    "record,code",
    [
        (_draft(student_id=""), "missing_student_id"),
        (_draft(assignment_id=""), "missing_assignment_id"),
        (_draft(submission_id=""), "missing_submission_id"),
        (_draft(status="unsubmitted"), "invalid_submission_status"),
        (_draft(status="lost"), "invalid_submission_status"),
    ],
)
def test_upsert_rejects_invalid_records(record, code):
    svc = SubmissionsService(InMemoryRecordStore())
    with pytest.raises(ValidationError) as excinfo:
        svc.upsert_submission(record)
    assert excinfo.value.code == code


def test_no_backward_move_from_submitted():
    svc = SubmissionsService(seeded_store())
    with pytest.raises(ValidationError) as excinfo:
        svc.upsert_submission(_draft(student_id="S1", assignment_id="A1", submission_id="SUB1"))
    assert excinfo.value.code == "invalid_status_transition"
    resubmitted = svc.upsert_submission(
        _draft(student_id="S1", assignment_id="A1", submission_id="SUB1", status="submitted")
    )
    assert resubmitted.action == "updated"


def test_unsubmitted_is_terminal():
    svc = SubmissionsService(seeded_store())
    with pytest.raises(ValidationError):
        svc.upsert_submission(_draft(student_id="S2", assignment_id="A1", submission_id="SUB2", status="submitted"))


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (None, SubmissionStatus.DRAFT, True),
        (SubmissionStatus.EMPTY, SubmissionStatus.SUBMITTED, True),
        (SubmissionStatus.DRAFT, SubmissionStatus.DRAFT, True),
        (SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED, True),
        (SubmissionStatus.SUBMITTED, SubmissionStatus.SUBMITTED, True),
        (SubmissionStatus.SUBMITTED, SubmissionStatus.DRAFT, False),
        (SubmissionStatus.UNSUBMITTED, SubmissionStatus.DRAFT, False),
        (SubmissionStatus.DRAFT, SubmissionStatus.EMPTY, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert transition_allowed(current, target) is allowed


@pytest.mark.parametrize("grade", [-1, 101, 100.5, True, "80", None])
def test_grade_outside_range_or_not_numeric_is_rejected(grade):
    svc = SubmissionsService(seeded_store())
    with pytest.raises(ValidationError) as excinfo:
        svc.grade_submission("SUB1", grade)
    assert excinfo.value.code == "invalid_grade"


@pytest.mark.parametrize("grade", [0, 100, 49.5])
def test_grade_boundaries_are_accepted(grade):
    svc = SubmissionsService(seeded_store())
    assert svc.grade_submission("SUB1", grade).grade == grade


def test_grade_merges_comment_and_defaults_grader():
    svc = SubmissionsService(seeded_store())

    graded = svc.grade_submission("SUB1", 65)
    assert graded.comment == "Solid"
    assert graded.graded_by == "coordinator"
    assert graded.submission_status is SubmissionStatus.SUBMITTED

    regraded = svc.grade_submission("SUB1", 70, comment="Better", graded_by="T1")
    assert (regraded.comment, regraded.graded_by) == ("Better", "T1")


def test_grading_non_submitted_records_is_permitted():
    svc = SubmissionsService(seeded_store())
    graded = svc.grade_submission("SUB3", 40)
    assert graded.submission_status is SubmissionStatus.DRAFT
    assert graded.grade == 40


def test_grade_unknown_submission_is_not_found():
    with pytest.raises(NotFoundError):
        SubmissionsService(seeded_store()).grade_submission("NOPE", 50)


def test_find_helpers():
    svc = SubmissionsService(seeded_store())
    assert [s.submission_id for s in svc.find_for_assignments_and_student(["A1"])] == ["SUB1", "SUB2"]
    assert [s.submission_id for s in svc.find_for_assignments_and_student(["A1", "A3"], "S3")] == ["SUB3"]
    assert svc.find_submission("S1", "A1").submission_id == "SUB1"
    assert svc.find_submission("S1", "A3") is None


def test_submission_detail_includes_assignment():
    svc = SubmissionsService(seeded_store())
    detail = svc.get_submission_detail("SUB3")
    assert detail.assignment.id == "A3"
    with pytest.raises(NotFoundError):
        svc.get_submission_detail("NOPE")


def test_upsert_with_id_owned_by_another_pair_conflicts():
    store = seeded_store()
    with pytest.raises(ConflictError) as excinfo:
        SubmissionsService(store).upsert_submission(_draft(student_id="S2", assignment_id="A2", submission_id="SUB1"))
    assert excinfo.value.code == "submission_id_taken"
    assert len(store.load("submissions")) == 3


def test_unknown_stored_status_does_not_block_other_pairs():
    records = sample_records()
    records["submissions"].append(
        {"submissionId": "SUB7", "studentId": "S2", "assignmentId": "A2", "submissionStatus": "late"}
    )
    store = InMemoryRecordStore(records)

    result = SubmissionsService(store).upsert_submission(_draft())

    assert result.action == "created"
    stored = {s["submissionId"]: s["submissionStatus"] for s in store.load("submissions")}
    assert stored["SUB7"] == "late"
    assert stored["SUB9"] == "draft"
