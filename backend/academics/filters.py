"""
Composable filters over assignments and submissions.

Predicates are plain callables combined with AND, so the order in which a
caller lists them never changes the result set. ``query_assignments`` builds
the predicate lists for the assignment read endpoint.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from .domain import Assignment, AssignmentStatus, Submission, SubmissionStatus, parse_status

T = TypeVar("T")
Predicate = Callable[[T], bool]
AssignmentPredicate = Callable[[Assignment], bool]
SubmissionPredicate = Callable[[Submission], bool]


def split_codes(value: Union[str, Iterable[str], None]) -> List[str]:
    """Split ``"BM001, BM002,BM001"`` into ``["BM001", "BM002"]``.

    Accepts an iterable of strings as well; blanks are dropped and the first
    occurrence of each code keeps its position.
    """
    if value is None:
        return []
    parts: Iterable[str] = value.split(",") if isinstance(value, str) else value
    seen: dict[str, None] = {}
    for part in parts:
        code = str(part).strip()
        if code:
            seen.setdefault(code, None)
    return list(seen)


def apply_filters(items: Iterable[T], predicates: Sequence[Predicate]) -> List[T]:
    return [item for item in items if all(predicate(item) for predicate in predicates)]


def filter_assignments(assignments: Iterable[Assignment], predicates: Sequence[AssignmentPredicate]) -> List[Assignment]:
    return apply_filters(assignments, predicates)


def filter_submissions(submissions: Iterable[Submission], predicates: Sequence[SubmissionPredicate]) -> List[Submission]:
    return apply_filters(submissions, predicates)


# --- Assignment predicates ------------------------------------------------------


def by_id(assignment_id: str) -> AssignmentPredicate:
    return lambda a: a.id == assignment_id


def by_ids(assignment_ids: Iterable[str]) -> AssignmentPredicate:
    wanted = frozenset(assignment_ids)
    return lambda a: a.id in wanted


def by_unit_codes(codes: Union[str, Iterable[str]]) -> AssignmentPredicate:
    wanted = frozenset(split_codes(codes))
    return lambda a: a.unit_code in wanted


def by_assignment_status(status: Union[str, AssignmentStatus]) -> AssignmentPredicate:
    wanted = parse_status(AssignmentStatus, status)
    return lambda a: a.status is wanted


def enrolled_units(student_id: str, submissions: Iterable[Submission], assignments: Iterable[Assignment]) -> List[str]:
    """Units a student is enrolled in, inferred from their submissions.

    There is no enrollment table: a unit counts once the student holds a
    submission for any of its assignments.
    """
    unit_by_assignment = {a.id: a.unit_code for a in assignments}
    units: dict[str, None] = {}
    for submission in submissions:
        if submission.student_id != student_id:
            continue
        unit_code = unit_by_assignment.get(submission.assignment_id)
        if unit_code:
            units.setdefault(unit_code, None)
    return list(units)


def by_enrolled_units(
    student_id: str, submissions: Iterable[Submission], assignments: Sequence[Assignment]
) -> AssignmentPredicate:
    return by_unit_codes(enrolled_units(student_id, submissions, assignments))


# --- Submission predicates ------------------------------------------------------


def by_student(student_id: str) -> SubmissionPredicate:
    wanted = str(student_id)
    return lambda s: s.student_id == wanted


def by_assignment_ids(assignment_ids: Iterable[str]) -> SubmissionPredicate:
    wanted = frozenset(assignment_ids)
    return lambda s: s.assignment_id in wanted


def by_submission_status(status: Union[str, SubmissionStatus]) -> SubmissionPredicate:
    wanted = parse_status(SubmissionStatus, status)
    return lambda s: s.submission_status is wanted


def by_submission_id(submission_id: str) -> SubmissionPredicate:
    return lambda s: s.submission_id == submission_id


# --- Read-endpoint query ----------------------------------------------------------


@dataclass
class AssignmentQuery:
    assignment_id: Optional[str] = None
    unit_codes: Optional[str] = None
    student_id: Optional[str] = None
    status: Optional[str] = None
    submission_id: Optional[str] = None
    submission_status: Optional[str] = None
    include_submissions: bool = False


@dataclass
class AssignmentView:
    assignments: List[Assignment]
    submissions: Optional[List[Submission]] = None


def query_assignments(
    query: AssignmentQuery, assignments: Sequence[Assignment], submissions: Sequence[Submission]
) -> AssignmentView:
    """Filter assignments (and optionally their submissions) for a read request.

    Behavior:
        - With ``student_id`` and ``include_submissions`` the assignments are
          first narrowed to the student's enrolled units.
        - Without ``include_submissions`` only assignments are returned.
        - ``submission_id`` short-circuits the submission filters.
        - Otherwise submissions are limited to the returned assignments and
          narrowed by student and submission status.
    """
    assignment_filters: List[AssignmentPredicate] = []
    if query.student_id and query.include_submissions:
        assignment_filters.append(by_enrolled_units(query.student_id, submissions, assignments))
    if query.assignment_id:
        assignment_filters.append(by_id(query.assignment_id))
    if query.unit_codes:
        assignment_filters.append(by_unit_codes(query.unit_codes))
    if query.status:
        assignment_filters.append(by_assignment_status(query.status))
    selected = filter_assignments(assignments, assignment_filters)

    if not query.include_submissions:
        return AssignmentView(assignments=selected)

    if query.submission_id:
        return AssignmentView(
            assignments=selected,
            submissions=filter_submissions(submissions, [by_submission_id(query.submission_id)]),
        )

    submission_filters: List[SubmissionPredicate] = [by_assignment_ids(a.id for a in selected)]
    if query.student_id:
        submission_filters.append(by_student(query.student_id))
    if query.submission_status:
        submission_filters.append(by_submission_status(query.submission_status))
    return AssignmentView(assignments=selected, submissions=filter_submissions(submissions, submission_filters))


__all__ = [
    "split_codes",
    "apply_filters",
    "filter_assignments",
    "filter_submissions",
    "by_id",
    "by_ids",
    "by_unit_codes",
    "by_assignment_status",
    "enrolled_units",
    "by_enrolled_units",
    "by_student",
    "by_assignment_ids",
    "by_submission_status",
    "by_submission_id",
    "AssignmentQuery",
    "AssignmentView",
    "query_assignments",
]
