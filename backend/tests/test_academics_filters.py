from __future__ import annotations

import itertools

import pytest

from academics.domain import Assignment, Submission
from academics.errors import ValidationError
from academics.filters import (
    AssignmentQuery,
    by_assignment_status,
    by_id,
    by_student,
    by_submission_status,
    by_unit_codes,
    enrolled_units,
    filter_assignments,
    filter_submissions,
    query_assignments,
    split_codes,
)
from utils.academic_fixtures import sample_records


@pytest.fixture
def assignments() -> list[Assignment]:
    return [Assignment.from_record(r) for r in sample_records()["assignments"]]


@pytest.fixture
def submissions() -> list[Submission]:
    return [Submission.from_record(r) for r in sample_records()["submissions"]]


def test_split_codes_trims_and_dedupes():
    assert split_codes(" BM001, BM002,,BM001 ") == ["BM001", "BM002"]
    assert split_codes(["CS101", " CS101"]) == ["CS101"]
    assert split_codes(None) == []


def test_filter_order_does_not_change_result(assignments):
    predicates = [by_unit_codes("BM001,CS101"), by_assignment_status("closed"), by_id("A1")]
    results = {
        tuple(a.id for a in filter_assignments(assignments, list(order)))
        for order in itertools.permutations(predicates)
    }
    assert results == {("A1",)}


def test_submission_filters_compose(submissions):
    selected = filter_submissions(submissions, [by_student("S1"), by_submission_status("SUBMITTED")])
    assert [s.submission_id for s in selected] == ["SUB1"]


def test_unknown_status_in_filter_is_a_validation_error():
    with pytest.raises(ValidationError):
        by_assignment_status("archived")


def test_enrolled_units_are_inferred_from_submissions(assignments, submissions):
    assert enrolled_units("S3", submissions, assignments) == ["CS101"]
    assert enrolled_units("S9", submissions, assignments) == []


def test_query_without_submissions_returns_assignments_only(assignments, submissions):
    view = query_assignments(AssignmentQuery(unit_codes="BM001", status="open"), assignments, submissions)
    assert [a.id for a in view.assignments] == ["A2"]
    assert view.submissions is None


def test_query_student_with_submissions_scopes_to_enrolled_units(assignments, submissions):
    view = query_assignments(
        AssignmentQuery(student_id="S1", include_submissions=True), assignments, submissions
    )
    assert [a.id for a in view.assignments] == ["A1", "A2"]
    assert [s.submission_id for s in view.submissions] == ["SUB1"]


def test_query_submission_id_short_circuits(assignments, submissions):
    view = query_assignments(
        AssignmentQuery(submission_id="SUB3", include_submissions=True, unit_codes="BM001"), assignments, submissions
    )
    assert [s.submission_id for s in view.submissions] == ["SUB3"]


def test_query_filters_submissions_by_status(assignments, submissions):
    view = query_assignments(
        AssignmentQuery(include_submissions=True, submission_status="unsubmitted"), assignments, submissions
    )
    assert [a.id for a in view.assignments] == ["A1", "A2", "A3"]
    assert [s.submission_id for s in view.submissions] == ["SUB2"]
