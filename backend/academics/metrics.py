"""
Progress & metrics aggregation (pure functions).

Intent:
    Derive dashboard numbers from raw records without touching the store.
    Callers scope the inputs (a course, a unit, a student) before calling in;
    nothing here filters by cohort except where a formula says so.

Behavior:
    - Every function is total: empty or ungraded input yields 0, never raises.
    - Percentages round half up (12.5 -> 13) to match the numbers the
      coordinator dashboards have always shown.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .domain import (
    Assignment,
    StudentProgress,
    Student,
    Submission,
    SubmissionStatus,
    WEEK_COUNT,
)

DEFAULT_PASS_MARK = 50
DEFAULT_COURSE_PREFIX_LENGTH = 2


class GradePolicy(str, Enum):
    """How ungraded submissions enter the average grade."""

    EXCLUDE_UNGRADED = "exclude_ungraded"
    UNGRADED_AS_ZERO = "ungraded_as_zero"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent(numerator: float, denominator: float) -> int:
    if denominator <= 0:
        return 0
    return round_half_up(numerator / denominator * 100)


@dataclass(frozen=True)
class ProgressSummary:
    percentage: int
    completed: int
    total: int


def unit_progress(progress: StudentProgress, assignments: Iterable[Assignment]) -> ProgressSummary:
    """Completion of one (student, unit) progress record.

    Closed assignments of the unit count as completed items whether or not
    the student submitted; the figure tracks how far the unit has advanced.
    """
    unit_assignments = [a for a in assignments if a.unit_code == progress.unit_code]
    completed = progress.completed_weeks + sum(1 for a in unit_assignments if a.is_closed)
    total = WEEK_COUNT + len(unit_assignments)
    return ProgressSummary(percentage=_percent(completed, total), completed=completed, total=total)


def unit_progress_percentage(progress: StudentProgress, assignments: Iterable[Assignment]) -> int:
    return unit_progress(progress, assignments).percentage


def average_progress(progress_records: Sequence[StudentProgress], assignments: Sequence[Assignment]) -> int:
    if not progress_records:
        return 0
    total = sum(unit_progress_percentage(record, assignments) for record in progress_records)
    return round_half_up(total / len(progress_records))


def average_grade(
    submissions: Iterable[Submission], policy: GradePolicy = GradePolicy.EXCLUDE_UNGRADED
) -> int:
    if policy is GradePolicy.UNGRADED_AS_ZERO:
        grades = [s.grade if s.grade is not None else 0 for s in submissions]
    else:
        grades = [s.grade for s in submissions if s.grade is not None]
    if not grades:
        return 0
    return round_half_up(sum(grades) / len(grades))


def possible_submissions(
    students: Iterable[Student],
    assignments: Iterable[Assignment],
    *,
    prefix_length: int = DEFAULT_COURSE_PREFIX_LENGTH,
) -> int:
    """Closed assignments per student, summed over the cohort.

    Course membership of an assignment is read from the first
    ``prefix_length`` characters of its unit code ("BM001" -> "BM").
    """
    closed = [a for a in assignments if a.is_closed]
    return sum(
        1 for student in students for a in closed if a.unit_code[:prefix_length] == student.course_code
    )


def submission_rate(
    students: Sequence[Student],
    assignments: Sequence[Assignment],
    submissions: Iterable[Submission],
    *,
    prefix_length: int = DEFAULT_COURSE_PREFIX_LENGTH,
) -> int:
    possible = possible_submissions(students, assignments, prefix_length=prefix_length)
    closed_ids = {a.id for a in assignments if a.is_closed}
    actual = sum(
        1
        for s in submissions
        if s.assignment_id in closed_ids and s.submission_status is SubmissionStatus.SUBMITTED
    )
    return _percent(actual, possible)


def failed_assignment_count(submissions: Iterable[Submission], *, pass_mark: float = DEFAULT_PASS_MARK) -> int:
    return sum(
        1
        for s in submissions
        if (s.grade is not None and s.grade < pass_mark) or s.submission_status is SubmissionStatus.UNSUBMITTED
    )


def assignment_success_rate(failed: int, possible: int) -> int:
    """``100 - failed/possible`` as a percentage, clamped to 0..100."""
    failed_share = min(failed / max(possible, 1) * 100, 100)
    return round_half_up(100 - failed_share)


@dataclass(frozen=True)
class DashboardMetrics:
    student_count: int
    teacher_count: int
    course_count: int
    avg_progress: int
    avg_grade: int
    submission_rate: int


@dataclass(frozen=True)
class UnitMetrics:
    student_count: int
    teacher_count: int
    assignment_count: int
    avg_progress: int
    avg_grade: int
    submission_rate: int
    failed_assignments: int
    success_rate: int


@dataclass(frozen=True)
class StudentSummary:
    average_grade: int
    submitted_count: int
    total_assignments: int
    completed_weeks: int
    total_weeks: int


def dashboard_metrics(
    *,
    students: Sequence[Student],
    teacher_count: int,
    course_count: int,
    progress: Sequence[StudentProgress],
    assignments: Sequence[Assignment],
    submissions: Sequence[Submission],
    grade_policy: GradePolicy = GradePolicy.EXCLUDE_UNGRADED,
    prefix_length: int = DEFAULT_COURSE_PREFIX_LENGTH,
) -> DashboardMetrics:
    return DashboardMetrics(
        student_count=len(students),
        teacher_count=teacher_count,
        course_count=course_count,
        avg_progress=average_progress(progress, assignments),
        avg_grade=average_grade(submissions, grade_policy),
        submission_rate=submission_rate(students, assignments, submissions, prefix_length=prefix_length),
    )


def unit_metrics(
    *,
    students: Sequence[Student],
    teacher_count: int,
    progress: Sequence[StudentProgress],
    assignments: Sequence[Assignment],
    submissions: Sequence[Submission],
    grade_policy: GradePolicy = GradePolicy.EXCLUDE_UNGRADED,
    prefix_length: int = DEFAULT_COURSE_PREFIX_LENGTH,
    pass_mark: float = DEFAULT_PASS_MARK,
) -> UnitMetrics:
    base = dashboard_metrics(
        students=students,
        teacher_count=teacher_count,
        course_count=0,
        progress=progress,
        assignments=assignments,
        submissions=submissions,
        grade_policy=grade_policy,
        prefix_length=prefix_length,
    )
    failed = failed_assignment_count(submissions, pass_mark=pass_mark)
    return UnitMetrics(
        student_count=base.student_count,
        teacher_count=base.teacher_count,
        assignment_count=len(assignments),
        avg_progress=base.avg_progress,
        avg_grade=base.avg_grade,
        submission_rate=base.submission_rate,
        failed_assignments=failed,
        success_rate=assignment_success_rate(failed, len(assignments) * len(students)),
    )


def student_summary(
    submissions: Sequence[Submission],
    progress: Sequence[StudentProgress],
    *,
    grade_policy: GradePolicy = GradePolicy.EXCLUDE_UNGRADED,
) -> StudentSummary:
    return StudentSummary(
        average_grade=average_grade(submissions, grade_policy),
        submitted_count=sum(1 for s in submissions if s.submission_status is SubmissionStatus.SUBMITTED),
        total_assignments=len(submissions),
        completed_weeks=sum(record.completed_weeks for record in progress),
        total_weeks=WEEK_COUNT * len(progress),
    )


__all__ = [
    "GradePolicy",
    "DEFAULT_PASS_MARK",
    "DEFAULT_COURSE_PREFIX_LENGTH",
    "round_half_up",
    "ProgressSummary",
    "unit_progress",
    "unit_progress_percentage",
    "average_progress",
    "average_grade",
    "possible_submissions",
    "submission_rate",
    "failed_assignment_count",
    "assignment_success_rate",
    "DashboardMetrics",
    "UnitMetrics",
    "StudentSummary",
    "dashboard_metrics",
    "unit_metrics",
    "student_summary",
]
