"""
Submission lifecycle: create-or-replace, grading and lookups.

Lifecycle:
    empty -> draft -> submitted, with draft -> draft and submitted -> submitted
    (resubmission) allowed. ``unsubmitted`` is set externally when a deadline
    passes and cannot be left through this service. There is no way back
    from ``submitted``.

Identity:
    At most one submission exists per ``(studentId, assignmentId)``. The
    upsert is the only write path that adds records, so the pair stays unique.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..domain import Assignment, Submission, SubmissionStatus
from ..errors import ConflictError, NotFoundError, ValidationError
from ..filters import by_assignment_ids, by_student, filter_submissions
from ..store import ASSIGNMENTS, SUBMISSIONS, RecordStoreProtocol, load_records, save_records

logger = logging.getLogger("unitrack.academics.submissions")

DEFAULT_GRADER = "coordinator"
GRADE_MIN = 0
GRADE_MAX = 100

_WRITABLE_STATUSES = (SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED)


def transition_allowed(current: Optional[SubmissionStatus], target: SubmissionStatus) -> bool:
    """Return True when a submission may move from ``current`` to ``target``."""
    if target not in _WRITABLE_STATUSES:
        return False
    if current is None or current in (SubmissionStatus.EMPTY, SubmissionStatus.DRAFT):
        return True
    if current is SubmissionStatus.SUBMITTED:
        return target is SubmissionStatus.SUBMITTED
    return False


def _validate_grade(grade: object) -> float:
    if isinstance(grade, bool) or not isinstance(grade, (int, float)):
        raise ValidationError("invalid_grade")
    if math.isnan(grade) or grade < GRADE_MIN or grade > GRADE_MAX:
        raise ValidationError("invalid_grade")
    return grade


@dataclass
class UpsertResult:
    action: str  # "created" | "updated"
    record: Submission


@dataclass
class SubmissionDetail:
    submission: Submission
    assignment: Assignment


@dataclass
class SubmissionsService:
    store: RecordStoreProtocol

    def _submissions(self) -> List[Submission]:
        return load_records(self.store, SUBMISSIONS, Submission.from_record)

    def upsert_submission(self, record: Union[Submission, Mapping[str, Any]]) -> UpsertResult:
        """Create or replace the submission of a (student, assignment) pair.

        Behavior:
            - An existing record for the pair is replaced in place; its
              ``submissionId`` is kept when the new record carries none.
            - A submitted record without ``submittedAt`` is stamped now (UTC).

        Raises:
            ValidationError: missing identity fields, unknown status or a
                transition the lifecycle does not allow.
            ConflictError: ``submission_id_taken`` when another pair owns the id.
        """
        incoming = record if isinstance(record, Submission) else Submission.from_record(record)
        if not isinstance(incoming.submission_status, SubmissionStatus):
            raise ValidationError("invalid_submission_status")
        student_id = (incoming.student_id or "").strip()
        assignment_id = (incoming.assignment_id or "").strip()
        if not student_id:
            raise ValidationError("missing_student_id")
        if not assignment_id:
            raise ValidationError("missing_assignment_id")

        submissions = self._submissions()
        index = next(
            (i for i, s in enumerate(submissions) if s.identity == (student_id, assignment_id)),
            None,
        )
        current = submissions[index] if index is not None else None
        target = incoming.submission_status
        if not transition_allowed(current.submission_status if current else None, target):
            if target not in _WRITABLE_STATUSES:
                raise ValidationError("invalid_submission_status")
            raise ValidationError("invalid_status_transition")

        submission_id = (incoming.submission_id or "").strip() or (current.submission_id if current else "")
        if not submission_id:
            raise ValidationError("missing_submission_id")
        if any(s.submission_id == submission_id for i, s in enumerate(submissions) if i != index):
            raise ConflictError("submission_id_taken")

        submitted_at = incoming.submitted_at
        if target is SubmissionStatus.SUBMITTED and not submitted_at:
            submitted_at = datetime.now(timezone.utc).isoformat()
        stored = replace(
            incoming,
            submission_id=submission_id,
            student_id=student_id,
            assignment_id=assignment_id,
            submitted_at=submitted_at,
        )

        if index is None:
            submissions.append(stored)
            action = "created"
        else:
            submissions[index] = stored
            action = "updated"
        save_records(self.store, SUBMISSIONS, submissions)
        logger.info(
            "academics.submission.%s submission=%s student=%s assignment=%s status=%s",
            action,
            submission_id,
            student_id,
            assignment_id,
            target.value,
        )
        return UpsertResult(action=action, record=stored)

    def grade_submission(
        self,
        submission_id: str,
        grade: object,
        comment: Optional[str] = None,
        graded_by: Optional[str] = None,
    ) -> Submission:
        """Attach a grade (0..100) to a submission.

        The comment falls back to the existing one, the grader to
        ``"coordinator"``. The lifecycle status is not touched, so records
        that were never submitted can still be graded.
        """
        value = _validate_grade(grade)
        submissions = self._submissions()
        index = next((i for i, s in enumerate(submissions) if s.submission_id == submission_id), None)
        if index is None:
            raise NotFoundError("submission_not_found")
        current = submissions[index]
        graded = replace(
            current,
            grade=value,
            comment=comment or current.comment,
            graded_by=graded_by or DEFAULT_GRADER,
        )
        submissions[index] = graded
        save_records(self.store, SUBMISSIONS, submissions)
        logger.info("academics.submission.graded submission=%s grade=%s by=%s", submission_id, value, graded.graded_by)
        return graded

    def find_for_assignments_and_student(
        self, assignment_ids: Iterable[str], student_id: Optional[str] = None
    ) -> List[Submission]:
        predicates = [by_assignment_ids(assignment_ids)]
        if student_id:
            predicates.append(by_student(student_id))
        return filter_submissions(self._submissions(), predicates)

    def find_submission(self, student_id: str, assignment_id: str) -> Optional[Submission]:
        for submission in self._submissions():
            if submission.identity == (student_id, assignment_id):
                return submission
        return None

    def get_submission_detail(self, submission_id: str) -> SubmissionDetail:
        submission = next((s for s in self._submissions() if s.submission_id == submission_id), None)
        if submission is None:
            raise NotFoundError("submission_not_found")
        assignments = load_records(self.store, ASSIGNMENTS, Assignment.from_record)
        assignment = next((a for a in assignments if a.id == submission.assignment_id), None)
        if assignment is None:
            raise NotFoundError("assignment_not_found")
        return SubmissionDetail(submission=submission, assignment=assignment)


__all__ = [
    "DEFAULT_GRADER",
    "transition_allowed",
    "UpsertResult",
    "SubmissionDetail",
    "SubmissionsService",
]
