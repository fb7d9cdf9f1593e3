"""
Read-only analytics over the academic collections.

Each method loads what it needs, narrows it to one scope (everything, a
course, a unit, a student) and hands the slices to ``academics.metrics``.
Scoping rules:
    - course: students of the course, its units' assignments, submissions to
      those assignments, progress for those units, teachers of those units.
    - unit: students of the unit's course, the unit's assignments and their
      submissions, progress for the unit, teachers listing the unit.
    - student: the student's submissions and progress records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from ..config import AcademicsConfig
from ..domain import Assignment, Course, Student, StudentProgress, Submission, Teacher, Unit
from ..errors import NotFoundError
from ..metrics import (
    DashboardMetrics,
    StudentSummary,
    UnitMetrics,
    dashboard_metrics,
    student_summary,
    unit_metrics,
)
from ..store import (
    ASSIGNMENTS,
    COURSES,
    PROGRESS,
    STUDENTS,
    SUBMISSIONS,
    TEACHERS,
    UNITS,
    RecordStoreProtocol,
    load_records,
)

logger = logging.getLogger("unitrack.academics.analytics")


@dataclass
class AnalyticsService:
    store: RecordStoreProtocol
    config: AcademicsConfig = field(default_factory=AcademicsConfig)

    def _students(self) -> List[Student]:
        return load_records(self.store, STUDENTS, Student.from_record)

    def _teachers(self) -> List[Teacher]:
        return load_records(self.store, TEACHERS, Teacher.from_record)

    def _assignments(self) -> List[Assignment]:
        return load_records(self.store, ASSIGNMENTS, Assignment.from_record)

    def _submissions(self) -> List[Submission]:
        return load_records(self.store, SUBMISSIONS, Submission.from_record)

    def _progress(self) -> List[StudentProgress]:
        return load_records(self.store, PROGRESS, StudentProgress.from_record)

    def overview(self) -> DashboardMetrics:
        """Coordinator dashboard across every course."""
        return dashboard_metrics(
            students=self._students(),
            teacher_count=len(self._teachers()),
            course_count=len(load_records(self.store, COURSES, Course.from_record)),
            progress=self._progress(),
            assignments=self._assignments(),
            submissions=self._submissions(),
            grade_policy=self.config.grade_policy,
            prefix_length=self.config.course_prefix_length,
        )

    def course(self, course_code: str) -> DashboardMetrics:
        courses = load_records(self.store, COURSES, Course.from_record)
        if not any(c.code == course_code for c in courses):
            raise NotFoundError("course_not_found")
        unit_codes = {u.code for u in load_records(self.store, UNITS, Unit.from_record) if u.course_code == course_code}
        assignments = [a for a in self._assignments() if a.unit_code in unit_codes]
        assignment_ids = {a.id for a in assignments}
        teachers = [t for t in self._teachers() if unit_codes.intersection(t.units_teached)]
        logger.debug("academics.analytics.course course=%s units=%s", course_code, len(unit_codes))
        return dashboard_metrics(
            students=[s for s in self._students() if s.course_code == course_code],
            teacher_count=len(teachers),
            course_count=1,
            progress=[p for p in self._progress() if p.unit_code in unit_codes],
            assignments=assignments,
            submissions=[s for s in self._submissions() if s.assignment_id in assignment_ids],
            grade_policy=self.config.grade_policy,
            prefix_length=self.config.course_prefix_length,
        )

    def unit(self, unit_code: str) -> UnitMetrics:
        unit = next((u for u in load_records(self.store, UNITS, Unit.from_record) if u.code == unit_code), None)
        if unit is None:
            raise NotFoundError("unit_not_found")
        assignments = [a for a in self._assignments() if a.unit_code == unit_code]
        assignment_ids = {a.id for a in assignments}
        return unit_metrics(
            students=[s for s in self._students() if s.course_code == unit.course_code],
            teacher_count=sum(1 for t in self._teachers() if unit_code in t.units_teached),
            progress=[p for p in self._progress() if p.unit_code == unit_code],
            assignments=assignments,
            submissions=[s for s in self._submissions() if s.assignment_id in assignment_ids],
            grade_policy=self.config.grade_policy,
            prefix_length=self.config.course_prefix_length,
            pass_mark=self.config.pass_mark,
        )

    def student(self, student_id: str) -> StudentSummary:
        if not any(s.id == student_id for s in self._students()):
            raise NotFoundError("student_not_found")
        return student_summary(
            [s for s in self._submissions() if s.student_id == student_id],
            [p for p in self._progress() if p.student_id == student_id],
            grade_policy=self.config.grade_policy,
        )


__all__ = ["AnalyticsService"]
