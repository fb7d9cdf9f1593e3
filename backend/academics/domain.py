"""
Academic records and status vocabularies.

Why:
    The record store persists plain camelCase dicts (the flat-file format the
    coordinator tooling already uses). Services work on the dataclasses below
    and convert at the boundary via ``from_record`` / ``to_record`` so that no
    other module needs to know the on-disk key names.

Status values:
    Stored lowercase ("closed", "not done", "submitted"). Parsing accepts any
    case and underscores ("CLOSED", "NOT_DONE") because older data files mix
    both spellings. Request values go through ``parse_status`` (unknown
    spellings are rejected); stored records go through ``stored_status``,
    which keeps an unknown value as is so one bad record cannot block the
    whole collection.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from .errors import ValidationError


class _LenientEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            normalized = " ".join(value.strip().lower().replace("_", " ").split())
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class AssignmentStatus(_LenientEnum):
    OPEN = "open"
    CLOSED = "closed"


class SubmissionStatus(_LenientEnum):
    EMPTY = "empty"
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNSUBMITTED = "unsubmitted"


class MaterialStatus(_LenientEnum):
    DONE = "done"
    NOT_DONE = "not done"


E = TypeVar("E", bound=_LenientEnum)


def parse_status(enum_cls: Type[E], value: object, *, default: Optional[E] = None) -> E:
    """Parse a status value; raise ValidationError for unknown spellings."""
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"missing_{_enum_label(enum_cls)}")
        return default
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"invalid_{_enum_label(enum_cls)}") from exc


def stored_status(enum_cls: Type[E], value: object, *, default: E) -> Union[E, Any]:
    """Read a status from a stored record without rejecting the collection.

    Unknown values are kept verbatim: they compare unequal to every member,
    so no filter or aggregate counts them, and saving writes them back as is.
    """
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return value


def status_value(status: object) -> Any:
    return status.value if isinstance(status, Enum) else status


def _enum_label(enum_cls: type) -> str:
    name = enum_cls.__name__
    out = [name[0].lower()]
    for ch in name[1:]:
        if ch.isupper():
            out.append("_")
        out.append(ch.lower())
    return "".join(out)


def _text(record: Mapping[str, Any], key: str, default: str = "") -> str:
    value = record.get(key)
    if value is None:
        return default
    return str(value)


def _optional_text(record: Mapping[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    return None if value is None else str(value)


def _codes(record: Mapping[str, Any], key: str) -> List[str]:
    value = record.get(key)
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value]


@dataclass
class Course:
    code: str
    name: str
    units: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Course":
        return cls(code=_text(record, "code"), name=_text(record, "name"), units=_codes(record, "units"))

    def to_record(self) -> Dict[str, Any]:
        return {"code": self.code, "name": self.name, "units": list(self.units)}


@dataclass
class Unit:
    code: str
    name: str
    course_code: str
    description: str = ""
    current_week: int = 1

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Unit":
        week = record.get("currentWeek")
        return cls(
            code=_text(record, "code"),
            name=_text(record, "name"),
            course_code=_text(record, "courseCode"),
            description=_text(record, "description"),
            current_week=int(week) if isinstance(week, (int, float)) and not isinstance(week, bool) else 1,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "courseCode": self.course_code,
            "description": self.description,
            "currentWeek": self.current_week,
        }


@dataclass
class Teacher:
    id: str
    first_name: str
    last_name: str
    email: str
    units_teached: List[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Teacher":
        return cls(
            id=_text(record, "id"),
            first_name=_text(record, "firstName"),
            last_name=_text(record, "lastName"),
            email=_text(record, "email"),
            units_teached=_codes(record, "unitsTeached"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "unitsTeached": list(self.units_teached),
        }


@dataclass
class Coordinator:
    id: str
    first_name: str
    last_name: str
    email: str
    title: str = "Coordinator"
    course_managed: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Coordinator":
        return cls(
            id=_text(record, "id"),
            first_name=_text(record, "firstName"),
            last_name=_text(record, "lastName"),
            email=_text(record, "email"),
            title=_text(record, "title", "Coordinator"),
            course_managed=_codes(record, "courseManaged"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "title": self.title,
            "courseManaged": list(self.course_managed),
        }


@dataclass
class Assignment:
    id: str
    name: str
    unit_code: str
    deadline: Optional[str] = None
    published_at: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status is AssignmentStatus.CLOSED

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Assignment":
        return cls(
            id=_text(record, "id"),
            name=_text(record, "name"),
            unit_code=_text(record, "unitCode"),
            deadline=_optional_text(record, "deadline"),
            published_at=_optional_text(record, "publishedAt"),
            status=stored_status(AssignmentStatus, record.get("status"), default=AssignmentStatus.OPEN),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unitCode": self.unit_code,
            "deadline": self.deadline,
            "publishedAt": self.published_at,
            "status": status_value(self.status),
        }


@dataclass
class Submission:
    submission_id: str
    student_id: str
    assignment_id: str
    submission_status: SubmissionStatus = SubmissionStatus.EMPTY
    submission_name: str = ""
    submitted_at: Optional[str] = None
    grade: Optional[float] = None
    comment: str = ""
    graded_by: Optional[str] = None

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.student_id, self.assignment_id)

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Submission":
        grade = record.get("grade")
        if isinstance(grade, bool) or not isinstance(grade, (int, float)):
            grade = None
        return cls(
            submission_id=_text(record, "submissionId"),
            student_id=_text(record, "studentId"),
            assignment_id=_text(record, "assignmentId"),
            submission_status=stored_status(
                SubmissionStatus, record.get("submissionStatus"), default=SubmissionStatus.EMPTY
            ),
            submission_name=_text(record, "submissionName"),
            submitted_at=_optional_text(record, "submittedAt"),
            grade=grade,
            comment=_text(record, "comment"),
            graded_by=_optional_text(record, "gradedBy"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "submissionId": self.submission_id,
            "studentId": self.student_id,
            "assignmentId": self.assignment_id,
            "submissionStatus": status_value(self.submission_status),
            "submissionName": self.submission_name,
            "submittedAt": self.submitted_at,
            "grade": self.grade,
            "comment": self.comment,
            "gradedBy": self.graded_by,
        }


WEEK_COUNT = 4
WEEK_FIELDS = tuple(f"week{n}Material" for n in range(1, WEEK_COUNT + 1))


@dataclass
class StudentProgress:
    student_id: str
    unit_code: str
    week1_material: MaterialStatus = MaterialStatus.NOT_DONE
    week2_material: MaterialStatus = MaterialStatus.NOT_DONE
    week3_material: MaterialStatus = MaterialStatus.NOT_DONE
    week4_material: MaterialStatus = MaterialStatus.NOT_DONE
    updated_by: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def weeks(self) -> Tuple[MaterialStatus, ...]:
        return (self.week1_material, self.week2_material, self.week3_material, self.week4_material)

    @property
    def completed_weeks(self) -> int:
        return sum(1 for status in self.weeks if status is MaterialStatus.DONE)

    def set_week(self, week_number: int, status: MaterialStatus) -> None:
        if not 1 <= week_number <= WEEK_COUNT:
            raise ValidationError("invalid_week_number")
        setattr(self, f"week{week_number}_material", status)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "StudentProgress":
        weeks = [
            stored_status(MaterialStatus, record.get(key), default=MaterialStatus.NOT_DONE) for key in WEEK_FIELDS
        ]
        return cls(
            student_id=_text(record, "studentId"),
            unit_code=_text(record, "unitCode"),
            week1_material=weeks[0],
            week2_material=weeks[1],
            week3_material=weeks[2],
            week4_material=weeks[3],
            updated_by=_optional_text(record, "updatedBy"),
            last_updated=_optional_text(record, "lastUpdated"),
        )

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"studentId": self.student_id, "unitCode": self.unit_code}
        for key, status in zip(WEEK_FIELDS, self.weeks):
            record[key] = status_value(status)
        if self.updated_by is not None:
            record["updatedBy"] = self.updated_by
        if self.last_updated is not None:
            record["lastUpdated"] = self.last_updated
        return record


@dataclass
class Student:
    id: str
    first_name: str
    last_name: str
    email: str
    course_code: str
    year: Optional[int] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Student":
        year = record.get("year")
        return cls(
            id=_text(record, "id"),
            first_name=_text(record, "firstName"),
            last_name=_text(record, "lastName"),
            email=_text(record, "email"),
            course_code=_text(record, "courseCode"),
            year=int(year) if isinstance(year, int) and not isinstance(year, bool) else None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "courseCode": self.course_code,
            "year": self.year,
        }


__all__ = [
    "AssignmentStatus",
    "SubmissionStatus",
    "MaterialStatus",
    "parse_status",
    "stored_status",
    "status_value",
    "Course",
    "Unit",
    "Teacher",
    "Coordinator",
    "Assignment",
    "Submission",
    "StudentProgress",
    "Student",
    "WEEK_COUNT",
    "WEEK_FIELDS",
]
