"""
Academics API routes: structure, submissions, progress and analytics.

Why:
    Coordinators edit courses, units and teachers; students save drafts and
    submit work; dashboards read aggregated numbers. The adapter validates
    payload shape, maps domain errors to HTTP and delegates every rule to the
    academics services.

Notes:
    - Payloads and responses use the camelCase keys of the stored records.
    - Errors: 404 ``not_found``, 409 ``conflict``, 400 ``bad_request`` with the
      domain error code as ``detail``; store failures become 500
      ``internal_error``.
    - Persistence: the record store is built lazily from ``ACADEMICS_*``
      settings. Tests call `set_store` (and `set_config`) for isolation.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from academics.config import AcademicsConfig, build_record_store, load_academics_config
from academics.domain import Assignment, Course, Student, StudentProgress, Submission, SubmissionStatus, Teacher, Unit
from academics.errors import AcademicsError, ConflictError, NotFoundError, StoreError
from academics.filters import AssignmentQuery, query_assignments
from academics.services import AnalyticsService, IntegrityService, ProgressService, SubmissionsService
from academics.store import (
    ASSIGNMENTS,
    COORDINATORS,
    COURSES,
    STUDENTS,
    SUBMISSIONS,
    TEACHERS,
    UNITS,
    RecordStoreProtocol,
    load_records,
)

academics_router = APIRouter(tags=["Academics"])
logger = logging.getLogger("unitrack.web.academics")


# --- Store wiring ------------------------------------------------------------------

"""Lazy accessors to avoid reading the environment at import time in tests."""
_CONFIG: Optional[AcademicsConfig] = None
_STORE: Optional[RecordStoreProtocol] = None


def _get_config() -> AcademicsConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_academics_config()
    return _CONFIG


def _get_store() -> RecordStoreProtocol:
    global _STORE
    if _STORE is None:
        config = _get_config()
        _STORE = build_record_store(config)
        logger.info("academics.store.wired backend=%s", config.store_backend)
    return _STORE


def set_store(store: Optional[RecordStoreProtocol]) -> None:
    """Allow tests to swap the record store (None rebuilds from config)."""
    global _STORE
    _STORE = store


def set_config(config: Optional[AcademicsConfig]) -> None:
    """Allow tests to override analytics settings (None re-reads the env)."""
    global _CONFIG
    _CONFIG = config


def _integrity() -> IntegrityService:
    return IntegrityService(_get_store())


def _submissions() -> SubmissionsService:
    return SubmissionsService(_get_store())


def _progress() -> ProgressService:
    return ProgressService(_get_store())


def _analytics() -> AnalyticsService:
    return AnalyticsService(_get_store(), config=_get_config())


# --- Error mapping ------------------------------------------------------------------


def _error_response(exc: AcademicsError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        return JSONResponse({"error": "not_found", "detail": exc.code}, status_code=404)
    if isinstance(exc, ConflictError):
        return JSONResponse({"error": "conflict", "detail": exc.code}, status_code=409)
    return JSONResponse({"error": "bad_request", "detail": exc.code}, status_code=400)


def _store_failure(exc: StoreError, *, action: str) -> JSONResponse:
    logger.error("academics.%s.store_failed reason=%s", action, exc)
    return JSONResponse({"error": "internal_error", "detail": str(exc)}, status_code=500)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _metrics_payload(metrics: Any) -> Dict[str, Any]:
    return {_camel(key): value for key, value in asdict(metrics).items()}


# --- Request models -------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UnitCreatePayload(_CamelModel):
    code: str | None = None
    name: str | None = None
    course_code: str | None = Field(default=None, alias="courseCode")
    description: str | None = None
    current_week: int | None = Field(default=None, alias="currentWeek")
    teacher_id: str | None = Field(default=None, alias="teacherId")


class UnitUpdatePayload(_CamelModel):
    code: str | None = None
    name: str | None = None
    course_code: str | None = Field(default=None, alias="courseCode")
    description: str | None = None
    current_week: int | None = Field(default=None, alias="currentWeek")
    old_teacher_id: str | None = Field(default=None, alias="oldTeacherId")
    new_teacher_id: str | None = Field(default=None, alias="newTeacherId")


class CourseCreatePayload(_CamelModel):
    code: str | None = None
    name: str | None = None
    managed_by: str | None = Field(default=None, alias="managedBy")


class TeacherCreatePayload(_CamelModel):
    id: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None
    units_teached: List[str] = Field(default_factory=list, alias="unitsTeached")


class SubmissionPayload(_CamelModel):
    submission_id: str | None = Field(default=None, alias="submissionId")
    student_id: str | None = Field(default=None, alias="studentId")
    assignment_id: str | None = Field(default=None, alias="assignmentId")
    submission_status: str | None = Field(default=None, alias="submissionStatus")
    submission_name: str | None = Field(default=None, alias="submissionName")
    submitted_at: str | None = Field(default=None, alias="submittedAt")
    grade: Any = None
    comment: str | None = None
    graded_by: str | None = Field(default=None, alias="gradedBy")


class GradePayload(_CamelModel):
    grade: Any = None
    comment: str | None = None
    graded_by: str | None = Field(default=None, alias="gradedBy")


class ProgressUpdatePayload(_CamelModel):
    unit_code: str | None = Field(default=None, alias="unitCode")
    week_number: Any = Field(default=None, alias="weekNumber")
    completed: str | None = None
    updated_by: str | None = Field(default=None, alias="updatedBy")


# --- Structure -------------------------------------------------------------------------


@academics_router.get("/api/academic-data")
async def get_academic_data():
    """Return every structural collection in one payload (coordinator bootstrap)."""
    store = _get_store()
    try:
        body = {
            "courses": store.load(COURSES),
            "units": store.load(UNITS),
            "teachers": store.load(TEACHERS),
            "faculty": store.load(COORDINATORS),
            "assignments": store.load(ASSIGNMENTS),
        }
    except StoreError as exc:
        return _store_failure(exc, action="academic_data")
    return JSONResponse(body)


@academics_router.get("/api/units")
async def list_units(course_code: str | None = Query(default=None, alias="courseCode")):
    try:
        units = _integrity().list_units(course_code)
    except StoreError as exc:
        return _store_failure(exc, action="unit")
    return JSONResponse({"units": [u.to_record() for u in units]})


@academics_router.get("/api/units/{code}")
async def get_unit(code: str):
    service = _integrity()
    try:
        unit = service.get_unit(code)
        teachers = service.teachers_for_unit(code)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="unit")
    return JSONResponse({"unit": unit.to_record(), "teachers": [t.to_record() for t in teachers]})


@academics_router.post("/api/units")
async def create_unit(payload: UnitCreatePayload):
    """Create a unit inside a course.

    Behavior:
        - 201 with the unit on success
        - 400 when code, name or courseCode is missing
        - 404 when the course (or the given teacher) does not exist
        - 409 when the unit code is taken
    """
    unit = Unit(
        code=payload.code or "",
        name=payload.name or "",
        course_code=payload.course_code or "",
        description=payload.description or "",
        current_week=payload.current_week or 0,
    )
    try:
        created = _integrity().add_unit(unit, payload.course_code or "", payload.teacher_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="unit")
    return JSONResponse({"message": "Unit created successfully", "unit": created.to_record()}, status_code=201)


@academics_router.put("/api/units/{code}")
async def update_unit(code: str, payload: UnitUpdatePayload):
    """Edit a unit; a new code propagates to its course and teachers.

    ``oldTeacherId`` / ``newTeacherId`` are optional; when either is present
    the teaching assignment is moved after the unit itself was saved.
    """
    unit = Unit(
        code=payload.code or "",
        name=payload.name or "",
        course_code=payload.course_code or "",
        description=payload.description or "",
        current_week=payload.current_week or 0,
    )
    teacher_change: Dict[str, Any] = {}
    if "old_teacher_id" in payload.model_fields_set:
        teacher_change["old_teacher_id"] = payload.old_teacher_id
    if "new_teacher_id" in payload.model_fields_set:
        teacher_change["new_teacher_id"] = payload.new_teacher_id
    try:
        updated = _integrity().update_unit(code, unit, **teacher_change)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="unit")
    return JSONResponse({"message": "Unit updated successfully", "unit": updated.to_record()})


@academics_router.delete("/api/units/{code}")
async def delete_unit(code: str):
    try:
        removed = _integrity().delete_unit(code)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="unit")
    return JSONResponse({"message": "Unit deleted successfully", "unit": removed.to_record()})


@academics_router.get("/api/courses")
async def list_courses():
    store = _get_store()
    try:
        body = {"courses": store.load(COURSES), "units": store.load(UNITS)}
    except StoreError as exc:
        return _store_failure(exc, action="course")
    return JSONResponse(body)


@academics_router.post("/api/courses")
async def create_course(payload: CourseCreatePayload):
    course = Course(code=payload.code or "", name=payload.name or "")
    try:
        created = _integrity().add_course(course, payload.managed_by or "")
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="course")
    return JSONResponse({"message": "Course added successfully", "course": created.to_record()}, status_code=201)


@academics_router.delete("/api/courses/{code}")
async def delete_course(code: str):
    """Delete a course together with its units."""
    try:
        removed = _integrity().delete_course(code)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="course")
    return JSONResponse({"message": "Course and its units deleted successfully", "course": removed.to_record()})


@academics_router.get("/api/teachers")
async def list_teachers():
    try:
        teachers = _get_store().load(TEACHERS)
    except StoreError as exc:
        return _store_failure(exc, action="teacher")
    return JSONResponse({"teachers": teachers})


@academics_router.post("/api/teachers")
async def create_teacher(payload: TeacherCreatePayload):
    teacher = Teacher(
        id=payload.id or "",
        first_name=payload.first_name or "",
        last_name=payload.last_name or "",
        email=payload.email or "",
        units_teached=list(payload.units_teached),
    )
    try:
        created = _integrity().add_teacher(teacher)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="teacher")
    return JSONResponse({"message": "Teacher added successfully", "teacher": created.to_record()}, status_code=201)


@academics_router.delete("/api/teachers/{teacher_id}")
async def delete_teacher(teacher_id: str):
    try:
        removed = _integrity().delete_teacher(teacher_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="teacher")
    return JSONResponse({"message": "Teacher deleted successfully", "teacher": removed.to_record()})


@academics_router.post("/api/maintenance/reconcile")
async def reconcile_references():
    """Rebuild course and teacher back-references from the unit records."""
    try:
        report = _integrity().reconcile()
    except StoreError as exc:
        return _store_failure(exc, action="reconcile")
    return JSONResponse(
        {
            "coursesUpdated": report.courses_updated,
            "teachersUpdated": report.teachers_updated,
            "orphanUnits": report.orphan_units,
        }
    )


# --- Submissions ----------------------------------------------------------------------


@academics_router.post("/api/submissions")
async def save_submission(payload: SubmissionPayload):
    """Save a draft or submit work; one record per (studentId, assignmentId).

    Behavior:
        - 201 ``action=created`` for a new pair, 200 ``action=updated`` when
          the existing record was replaced
        - 400 for missing identity fields or a disallowed status change
        - 409 when the submissionId belongs to another pair
    """
    record = payload.model_dump(by_alias=True)
    try:
        result = _submissions().upsert_submission(record)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="submission")
    submitted = result.record.submission_status is SubmissionStatus.SUBMITTED
    if submitted:
        message = "Assignment submitted successfully!"
    elif result.action == "created":
        message = "Draft saved successfully!"
    else:
        message = "Draft updated successfully!"
    return JSONResponse(
        {"success": True, "message": message, "action": result.action, "data": result.record.to_record()},
        status_code=201 if result.action == "created" else 200,
    )


@academics_router.get("/api/submissions/check")
async def check_submission(
    student_id: str | None = Query(default=None, alias="studentId"),
    assignment_id: str | None = Query(default=None, alias="assignmentId"),
):
    if not student_id or not assignment_id:
        return JSONResponse({"error": "bad_request", "detail": "missing_student_or_assignment"}, status_code=400)
    try:
        found = _submissions().find_submission(student_id, assignment_id)
    except StoreError as exc:
        return _store_failure(exc, action="submission")
    return JSONResponse({"found": found is not None, "submission": found.to_record() if found else None})


@academics_router.get("/api/submissions/{submission_id}")
async def get_submission(submission_id: str):
    try:
        detail = _submissions().get_submission_detail(submission_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="submission")
    return JSONResponse({"submission": detail.submission.to_record(), "assignment": detail.assignment.to_record()})


@academics_router.put("/api/submissions/{submission_id}/grade")
async def grade_submission(submission_id: str, payload: GradePayload):
    """Grade a submission (0..100); comment and grader are optional."""
    try:
        graded = _submissions().grade_submission(
            submission_id, payload.grade, comment=payload.comment, graded_by=payload.graded_by
        )
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="submission")
    return JSONResponse({"message": "Grade updated successfully", "submission": graded.to_record()})


@academics_router.get("/api/assignments")
async def list_assignments(
    assignment_id: str | None = Query(default=None, alias="id"),
    unit_code: str | None = Query(default=None, alias="unitCode"),
    student_id: str | None = Query(default=None, alias="studentId"),
    status: str | None = None,
    submission_id: str | None = Query(default=None, alias="submissionId"),
    submission_status: str | None = Query(default=None, alias="submissionStatus"),
    include_submissions: str | None = Query(default=None, alias="includeSubmissions"),
):
    """Filter assignments; ``includeSubmissions=true`` adds matching submissions."""
    query = AssignmentQuery(
        assignment_id=assignment_id,
        unit_codes=unit_code,
        student_id=student_id,
        status=status,
        submission_id=submission_id,
        submission_status=submission_status,
        include_submissions=(include_submissions or "").lower() == "true",
    )
    store = _get_store()
    try:
        view = query_assignments(
            query,
            load_records(store, ASSIGNMENTS, Assignment.from_record),
            load_records(store, SUBMISSIONS, Submission.from_record),
        )
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="assignment")
    body: Dict[str, Any] = {"assignments": [a.to_record() for a in view.assignments]}
    if view.submissions is not None:
        body["submissions"] = [s.to_record() for s in view.submissions]
    return JSONResponse(body)


# --- Students & progress ------------------------------------------------------------------


def _student_payload(student_id: str) -> Dict[str, Any]:
    store = _get_store()
    student = next((s for s in load_records(store, STUDENTS, Student.from_record) if s.id == student_id), None)
    if student is None:
        raise NotFoundError("student_not_found")
    submissions = [s for s in load_records(store, SUBMISSIONS, Submission.from_record) if s.student_id == student_id]
    progress: List[StudentProgress] = _progress().progress_for_student(student_id)
    return {
        "student": student.to_record(),
        "assignments": [s.to_record() for s in submissions],
        "progress": [p.to_record() for p in progress],
    }


@academics_router.get("/api/students/{student_id}")
async def get_student(student_id: str):
    """Return a student with their submissions and progress records."""
    try:
        body = _student_payload(student_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="student")
    return JSONResponse(body)


@academics_router.put("/api/students/{student_id}/progress")
async def update_student_progress(student_id: str, payload: ProgressUpdatePayload):
    """Mark one week's material of a unit as done / not done.

    Behavior:
        - 200 with the refreshed student payload
        - 400 when unitCode is missing, weekNumber is outside 1..4 or
          ``completed`` is not a known status
        - 404 when no progress record exists for (student, unit)
    """
    if not payload.unit_code:
        return JSONResponse({"error": "bad_request", "detail": "missing_unit_code"}, status_code=400)
    try:
        _progress().update_week_material(
            student_id,
            payload.unit_code,
            payload.week_number,
            payload.completed,
            updated_by=payload.updated_by,
        )
        body = _student_payload(student_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="progress")
    return JSONResponse({"message": "Progress updated successfully", **body})


# --- Analytics ------------------------------------------------------------------------------


@academics_router.get("/api/analytics/overview")
async def analytics_overview():
    try:
        metrics = _analytics().overview()
    except StoreError as exc:
        return _store_failure(exc, action="analytics")
    return JSONResponse(_metrics_payload(metrics))


@academics_router.get("/api/analytics/course/{course_code}")
async def analytics_course(course_code: str):
    try:
        metrics = _analytics().course(course_code)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="analytics")
    return JSONResponse(_metrics_payload(metrics))


@academics_router.get("/api/analytics/unit/{unit_code}")
async def analytics_unit(unit_code: str):
    try:
        metrics = _analytics().unit(unit_code)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="analytics")
    return JSONResponse(_metrics_payload(metrics))


@academics_router.get("/api/analytics/student/{student_id}")
async def analytics_student(student_id: str):
    try:
        summary = _analytics().student(student_id)
    except AcademicsError as exc:
        return _error_response(exc)
    except StoreError as exc:
        return _store_failure(exc, action="analytics")
    return JSONResponse(_metrics_payload(summary))
