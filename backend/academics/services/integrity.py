"""
Referential integrity for courses, units, teachers and coordinators.

Why:
    ``course.units``, ``teacher.unitsTeached`` and ``coordinator.courseManaged``
    are denormalized back-references stored next to the primary records. This
    service is the only code path allowed to write them, so every structural
    edit keeps them in step with ``unit.courseCode``.

Behavior:
    - Each operation snapshots the collections it needs, validates, mutates
      and writes back. Nothing is cached between calls.
    - Primary writes (units, courses, the record being added or removed)
      propagate ``StoreError``. Secondary writes (teacher and coordinator
      lists) are best-effort: failures are logged and the primary write is
      kept. ``reconcile()`` heals whatever such failures leave behind.
    - Validation that can fail happens before the first write.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, TypeVar
from uuid import uuid4

from ..domain import Coordinator, Course, Teacher, Unit
from ..errors import AcademicsError, ConflictError, NotFoundError, StoreError, ValidationError
from ..store import (
    COORDINATORS,
    COURSES,
    TEACHERS,
    UNITS,
    RecordStoreProtocol,
    load_records,
    save_records,
)

logger = logging.getLogger("unitrack.academics.integrity")

T = TypeVar("T")

_UNSET = object()


def _require_text(value: object, code: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(code)
    return value.strip()


def _normalize_week(value: object, fallback: int) -> int:
    if value is None or value == 0:
        return fallback
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("invalid_current_week")
    return value


def _find(items: Sequence[T], predicate: Callable[[T], bool]) -> Optional[T]:
    for item in items:
        if predicate(item):
            return item
    return None


def _without(codes: List[str], code: str) -> List[str]:
    return [c for c in codes if c != code]


@dataclass
class ReconcileReport:
    """Outcome of a reconciliation pass."""

    courses_updated: List[str] = field(default_factory=list)
    teachers_updated: Dict[str, List[str]] = field(default_factory=dict)
    orphan_units: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.courses_updated or self.teachers_updated)


@dataclass
class IntegrityService:
    """Structural edits on the Course ↔ Unit ↔ Teacher graph."""

    store: RecordStoreProtocol

    # --- loading ------------------------------------------------------------------

    def _units(self) -> List[Unit]:
        return load_records(self.store, UNITS, Unit.from_record)

    def _courses(self) -> List[Course]:
        return load_records(self.store, COURSES, Course.from_record)

    def _teachers(self) -> List[Teacher]:
        return load_records(self.store, TEACHERS, Teacher.from_record)

    def _coordinators(self) -> List[Coordinator]:
        return load_records(self.store, COORDINATORS, Coordinator.from_record)

    def _best_effort(self, event: str, action: Callable[[], None], **fields: object) -> bool:
        """Run a secondary write; log and swallow store failures."""
        try:
            action()
        except StoreError as exc:
            details = " ".join(f"{key}={value}" for key, value in fields.items())
            logger.warning("%s_failed %s reason=%s", event, details, exc.__class__.__name__)
            return False
        return True

    # --- reads ----------------------------------------------------------------------

    def get_unit(self, code: str) -> Unit:
        unit = _find(self._units(), lambda u: u.code == code)
        if unit is None:
            raise NotFoundError("unit_not_found")
        return unit

    def get_course(self, code: str) -> Course:
        course = _find(self._courses(), lambda c: c.code == code)
        if course is None:
            raise NotFoundError("course_not_found")
        return course

    def list_units(self, course_code: Optional[str] = None) -> List[Unit]:
        units = self._units()
        if course_code:
            units = [u for u in units if u.course_code == course_code]
        return units

    def teachers_for_unit(self, unit_code: str) -> List[Teacher]:
        """Teachers listing the unit, in store order (first match is the author of record)."""
        return [t for t in self._teachers() if unit_code in t.units_teached]

    # --- units ----------------------------------------------------------------------

    def add_unit(self, unit: Unit, course_code: str, teacher_id: Optional[str] = None) -> Unit:
        """Create a unit inside ``course_code`` and optionally link a teacher.

        Raises:
            ValidationError: code, name or course code missing.
            ConflictError: ``unit_code_taken``.
            NotFoundError: ``course_not_found`` or ``teacher_not_found``.
        """
        code = _require_text(unit.code, "invalid_unit_code")
        name = _require_text(unit.name, "invalid_unit_name")
        course_code = _require_text(course_code, "invalid_course_code")
        week = _normalize_week(unit.current_week, 1)

        units = self._units()
        if any(u.code == code for u in units):
            raise ConflictError("unit_code_taken")
        courses = self._courses()
        course = _find(courses, lambda c: c.code == course_code)
        if course is None:
            raise NotFoundError("course_not_found")
        teachers: List[Teacher] = []
        teacher = None
        if teacher_id:
            teachers = self._teachers()
            teacher = _find(teachers, lambda t: t.id == teacher_id)
            if teacher is None:
                raise NotFoundError("teacher_not_found")

        created = Unit(
            code=code,
            name=name,
            course_code=course_code,
            description=(unit.description or "").strip(),
            current_week=week,
        )
        units.append(created)
        save_records(self.store, UNITS, units)
        if code not in course.units:
            course.units.append(code)
            save_records(self.store, COURSES, courses)
        logger.info("academics.unit.created unit=%s course=%s", code, course_code)

        if teacher is not None and code not in teacher.units_teached:
            teacher.units_teached.append(code)
            self._best_effort(
                "academics.unit.teacher_link",
                lambda: save_records(self.store, TEACHERS, teachers),
                unit=code,
                teacher=teacher_id,
            )
        return created

    def rename_unit(self, old_code: str, new_unit: Unit) -> Unit:
        """Replace a unit record and propagate a code change.

        Behavior:
            - The course reference is rewritten in place so module order stays.
            - Teachers listing the old code get the new one (best-effort).
            - A different ``course_code`` moves the unit to that course.
            - Blank description / current week keep the previous values.
        """
        units = self._units()
        index = next((i for i, u in enumerate(units) if u.code == old_code), None)
        if index is None:
            raise NotFoundError("unit_not_found")
        previous = units[index]

        new_code = _require_text(new_unit.code, "invalid_unit_code")
        name = _require_text(new_unit.name, "invalid_unit_name")
        if new_code != old_code and any(u.code == new_code for u in units):
            raise ConflictError("unit_code_taken")
        week = _normalize_week(new_unit.current_week, previous.current_week)

        courses = self._courses()
        target_course = (new_unit.course_code or "").strip() or previous.course_code
        if target_course != previous.course_code and _find(courses, lambda c: c.code == target_course) is None:
            raise NotFoundError("course_not_found")

        updated = Unit(
            code=new_code,
            name=name,
            course_code=target_course,
            description=(new_unit.description or "").strip() or previous.description,
            current_week=week,
        )
        units[index] = updated
        save_records(self.store, UNITS, units)

        if self._relink_course(courses, previous, updated):
            save_records(self.store, COURSES, courses)
        logger.info("academics.unit.updated unit=%s previous=%s course=%s", new_code, old_code, target_course)

        if new_code != old_code:
            self._best_effort(
                "academics.unit.teacher_rename",
                lambda: self._rename_in_teachers(old_code, new_code),
                unit=new_code,
                previous=old_code,
            )
        return updated

    def _relink_course(self, courses: List[Course], previous: Unit, updated: Unit) -> bool:
        old_parent = _find(courses, lambda c: c.code == previous.course_code)
        if updated.course_code == previous.course_code:
            if old_parent is None:
                return False
            if previous.code in old_parent.units:
                if previous.code == updated.code:
                    return False
                old_parent.units[old_parent.units.index(previous.code)] = updated.code
                old_parent.units = list(dict.fromkeys(old_parent.units))
                return True
            if updated.code not in old_parent.units:
                old_parent.units.append(updated.code)
                return True
            return False

        changed = False
        if old_parent is not None and previous.code in old_parent.units:
            old_parent.units = _without(old_parent.units, previous.code)
            changed = True
        new_parent = _find(courses, lambda c: c.code == updated.course_code)
        if new_parent is not None and updated.code not in new_parent.units:
            new_parent.units.append(updated.code)
            changed = True
        return changed

    def _rename_in_teachers(self, old_code: str, new_code: str) -> None:
        teachers = self._teachers()
        touched = 0
        for teacher in teachers:
            if old_code in teacher.units_teached:
                teacher.units_teached = list(
                    dict.fromkeys(new_code if c == old_code else c for c in teacher.units_teached)
                )
                touched += 1
        if touched:
            save_records(self.store, TEACHERS, teachers)
            logger.info("academics.unit.teachers_renamed unit=%s previous=%s teachers=%s", new_code, old_code, touched)

    def change_unit_teacher(
        self,
        unit_code: str,
        old_teacher_id: Optional[str],
        new_teacher_id: Optional[str],
        *,
        previous_code: Optional[str] = None,
    ) -> bool:
        """Move a unit between teachers' ``unitsTeached`` lists.

        Delta rules:
            - old teacher set and different from new: drop the (previous) code;
            - same teacher but the code changed: rewrite it in place;
            - new teacher set and different from old: append unless present.

        Returns True when the teacher collection was written; nothing is
        written when the delta is empty. An unknown old teacher is ignored
        (it may have been deleted); an unknown new teacher is an error.
        """
        if _find(self._units(), lambda u: u.code == unit_code) is None:
            raise NotFoundError("unit_not_found")
        listed_code = previous_code or unit_code
        teachers = self._teachers()
        new_teacher = None
        if new_teacher_id and new_teacher_id != old_teacher_id:
            new_teacher = _find(teachers, lambda t: t.id == new_teacher_id)
            if new_teacher is None:
                raise NotFoundError("teacher_not_found")

        changed = False
        if old_teacher_id and old_teacher_id != new_teacher_id:
            old_teacher = _find(teachers, lambda t: t.id == old_teacher_id)
            if old_teacher is not None and listed_code in old_teacher.units_teached:
                old_teacher.units_teached.remove(listed_code)
                changed = True
        if old_teacher_id and old_teacher_id == new_teacher_id and listed_code != unit_code:
            teacher = _find(teachers, lambda t: t.id == old_teacher_id)
            if teacher is not None and listed_code in teacher.units_teached:
                position = teacher.units_teached.index(listed_code)
                teacher.units_teached[position] = unit_code
                teacher.units_teached = list(dict.fromkeys(teacher.units_teached))
                changed = True
        if new_teacher is not None and unit_code not in new_teacher.units_teached:
            new_teacher.units_teached.append(unit_code)
            changed = True

        if not changed:
            logger.debug("academics.unit.teacher_unchanged unit=%s", unit_code)
            return False
        save_records(self.store, TEACHERS, teachers)
        logger.info(
            "academics.unit.teacher_changed unit=%s old_teacher=%s new_teacher=%s",
            unit_code,
            old_teacher_id,
            new_teacher_id,
        )
        return True

    def update_unit(
        self,
        old_code: str,
        new_unit: Unit,
        *,
        old_teacher_id: object = _UNSET,
        new_teacher_id: object = _UNSET,
    ) -> Unit:
        """Rename/edit a unit, then apply a teacher change if one was requested.

        The teacher change is a secondary step: its failures are logged and the
        unit update stands.
        """
        updated = self.rename_unit(old_code, new_unit)
        if old_teacher_id is _UNSET and new_teacher_id is _UNSET:
            return updated
        old_id = None if old_teacher_id is _UNSET else old_teacher_id
        new_id = None if new_teacher_id is _UNSET else new_teacher_id
        try:
            self.change_unit_teacher(updated.code, old_id, new_id)  # type: ignore[arg-type]
        except (AcademicsError, StoreError) as exc:
            logger.warning(
                "academics.unit.teacher_change_failed unit=%s reason=%s detail=%s",
                updated.code,
                exc.__class__.__name__,
                exc,
            )
        return updated

    def delete_unit(self, code: str) -> Unit:
        """Remove a unit, its course reference and (best-effort) teacher links."""
        units = self._units()
        unit = _find(units, lambda u: u.code == code)
        if unit is None:
            raise NotFoundError("unit_not_found")
        save_records(self.store, UNITS, [u for u in units if u.code != code])

        courses = self._courses()
        changed = False
        for course in courses:
            if code in course.units:
                course.units = _without(course.units, code)
                changed = True
        if changed:
            save_records(self.store, COURSES, courses)
        logger.info("academics.unit.deleted unit=%s course=%s", code, unit.course_code)

        self._best_effort(
            "academics.unit.teacher_unlink",
            lambda: self._unlink_from_teachers({code}),
            unit=code,
        )
        return unit

    def _unlink_from_teachers(self, codes: set[str]) -> None:
        teachers = self._teachers()
        touched = 0
        for teacher in teachers:
            kept = [c for c in teacher.units_teached if c not in codes]
            if len(kept) != len(teacher.units_teached):
                teacher.units_teached = kept
                touched += 1
        if touched:
            save_records(self.store, TEACHERS, teachers)
            logger.info("academics.teachers.units_unlinked units=%s teachers=%s", sorted(codes), touched)
        else:
            logger.debug("academics.teachers.units_unlinked units=%s teachers=0", sorted(codes))

    # --- courses ----------------------------------------------------------------------

    def add_course(self, course: Course, managed_by: str) -> Course:
        """Create an empty course and register it with its coordinator.

        Raises:
            ValidationError: code, name or ``managed_by`` missing.
            ConflictError: ``course_code_taken``.
            NotFoundError: ``coordinator_not_found``.
        """
        code = _require_text(course.code, "invalid_course_code")
        name = _require_text(course.name, "invalid_course_name")
        managed_by = _require_text(managed_by, "missing_managed_by")

        courses = self._courses()
        if any(c.code == code for c in courses):
            raise ConflictError("course_code_taken")
        coordinators = self._coordinators()
        coordinator = _find(coordinators, lambda c: c.id == managed_by)
        if coordinator is None:
            raise NotFoundError("coordinator_not_found")

        created = Course(code=code, name=name, units=[])
        courses.append(created)
        save_records(self.store, COURSES, courses)
        logger.info("academics.course.created course=%s coordinator=%s", code, managed_by)

        if code not in coordinator.course_managed:
            coordinator.course_managed.append(code)
            self._best_effort(
                "academics.course.coordinator_link",
                lambda: save_records(self.store, COORDINATORS, coordinators),
                course=code,
                coordinator=managed_by,
            )
        return created

    def delete_course(self, code: str) -> Course:
        """Delete a course with all of its units.

        Cascade order: units of the course, the course, then coordinator and
        teacher references (best-effort).
        """
        courses = self._courses()
        course = _find(courses, lambda c: c.code == code)
        if course is None:
            raise NotFoundError("course_not_found")

        units = self._units()
        removed = {u.code for u in units if u.course_code == code}
        if removed:
            save_records(self.store, UNITS, [u for u in units if u.course_code != code])
        save_records(self.store, COURSES, [c for c in courses if c.code != code])
        logger.info("academics.course.deleted course=%s units=%s", code, len(removed))

        self._best_effort(
            "academics.course.coordinator_unlink",
            lambda: self._unlink_course_from_coordinators(code),
            course=code,
        )
        if removed:
            self._best_effort(
                "academics.course.teacher_unlink",
                lambda: self._unlink_from_teachers(removed),
                course=code,
            )
        return course

    def _unlink_course_from_coordinators(self, code: str) -> None:
        coordinators = self._coordinators()
        touched = False
        for coordinator in coordinators:
            if code in coordinator.course_managed:
                coordinator.course_managed = _without(coordinator.course_managed, code)
                touched = True
        if touched:
            save_records(self.store, COORDINATORS, coordinators)

    # --- teachers ----------------------------------------------------------------------

    def add_teacher(self, teacher: Teacher) -> Teacher:
        """Register a teacher (id generated when absent); ids and emails are unique, listed units must exist."""
        teacher_id = (teacher.id or "").strip() or str(uuid4())
        first_name = _require_text(teacher.first_name, "invalid_first_name")
        last_name = _require_text(teacher.last_name, "invalid_last_name")
        email = _require_text(teacher.email, "invalid_email")

        teachers = self._teachers()
        if any(t.id == teacher_id for t in teachers):
            raise ConflictError("teacher_id_taken")
        if any(t.email.strip().lower() == email.lower() for t in teachers):
            raise ConflictError("teacher_email_taken")
        units_teached = list(dict.fromkeys(c.strip() for c in teacher.units_teached if c and c.strip()))
        if units_teached:
            known = {u.code for u in self._units()}
            if any(c not in known for c in units_teached):
                raise NotFoundError("unit_not_found")

        created = Teacher(
            id=teacher_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            units_teached=units_teached,
        )
        teachers.append(created)
        save_records(self.store, TEACHERS, teachers)
        logger.info("academics.teacher.created teacher=%s units=%s", teacher_id, len(units_teached))
        return created

    def delete_teacher(self, teacher_id: str) -> Teacher:
        teachers = self._teachers()
        teacher = _find(teachers, lambda t: t.id == teacher_id)
        if teacher is None:
            raise NotFoundError("teacher_not_found")
        save_records(self.store, TEACHERS, [t for t in teachers if t.id != teacher_id])
        logger.info("academics.teacher.deleted teacher=%s", teacher_id)
        return teacher

    # --- healing ----------------------------------------------------------------------

    def reconcile(self) -> ReconcileReport:
        """Rebuild back-reference lists from ``unit.courseCode`` and existing units.

        - ``course.units`` keeps its current order for valid codes and appends
          units that point at the course but were missing.
        - Teacher lists lose codes of units that no longer exist.
        - Units whose course is gone are reported, not deleted.
        """
        units = self._units()
        courses = self._courses()
        teachers = self._teachers()
        report = ReconcileReport()

        by_course: Dict[str, List[str]] = {}
        for unit in units:
            by_course.setdefault(unit.course_code, []).append(unit.code)
        for course in courses:
            expected = by_course.get(course.code, [])
            kept = [c for c in dict.fromkeys(course.units) if c in expected]
            rebuilt = kept + [c for c in expected if c not in kept]
            if rebuilt != course.units:
                course.units = rebuilt
                report.courses_updated.append(course.code)
        course_codes = {c.code for c in courses}
        report.orphan_units = [u.code for u in units if u.course_code not in course_codes]

        known_units = {u.code for u in units}
        for teacher in teachers:
            cleaned = [c for c in dict.fromkeys(teacher.units_teached) if c in known_units]
            if cleaned != teacher.units_teached:
                dropped = [c for c in teacher.units_teached if c not in known_units]
                report.teachers_updated[teacher.id] = dropped
                teacher.units_teached = cleaned

        if report.courses_updated:
            save_records(self.store, COURSES, courses)
        if report.teachers_updated:
            save_records(self.store, TEACHERS, teachers)
        logger.info(
            "academics.reconcile.done courses=%s teachers=%s orphans=%s",
            len(report.courses_updated),
            len(report.teachers_updated),
            len(report.orphan_units),
        )
        return report


__all__ = ["IntegrityService", "ReconcileReport"]
