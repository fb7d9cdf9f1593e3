"""
Sample academic records shared by service and API tests.

Shape:
    Courses BM (units BM001, BM002) and CS (unit CS101); teachers T1 (BM001)
    and T2 (BM002, CS101); coordinator C1 manages both courses; students S1,
    S2 in BM and S3 in CS; assignments A1 (BM001, closed), A2 (BM001, open),
    A3 (CS101, closed).
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List

from academics.store import InMemoryRecordStore

_SAMPLE: Dict[str, List[Dict[str, Any]]] = {
    "courses": [
        {"code": "BM", "name": "Business Management", "units": ["BM001", "BM002"]},
        {"code": "CS", "name": "Computer Science", "units": ["CS101"]},
    ],
    "units": [
        {"code": "BM001", "name": "Accounting", "courseCode": "BM", "description": "Intro", "currentWeek": 2},
        {"code": "BM002", "name": "Marketing", "courseCode": "BM", "description": "", "currentWeek": 1},
        {"code": "CS101", "name": "Programming", "courseCode": "CS", "description": "Python", "currentWeek": 3},
    ],
    "teachers": [
        {"id": "T1", "firstName": "Ada", "lastName": "Byron", "email": "ada@uni.test", "unitsTeached": ["BM001"]},
        {
            "id": "T2",
            "firstName": "Alan",
            "lastName": "Turing",
            "email": "alan@uni.test",
            "unitsTeached": ["BM002", "CS101"],
        },
    ],
    "coordinators": [
        {
            "id": "C1",
            "firstName": "Grace",
            "lastName": "Hopper",
            "email": "grace@uni.test",
            "title": "Coordinator",
            "courseManaged": ["BM", "CS"],
        }
    ],
    "students": [
        {"id": "S1", "firstName": "Sam", "lastName": "One", "email": "s1@uni.test", "courseCode": "BM", "year": 1},
        {"id": "S2", "firstName": "Sue", "lastName": "Two", "email": "s2@uni.test", "courseCode": "BM", "year": 2},
        {"id": "S3", "firstName": "Sid", "lastName": "Three", "email": "s3@uni.test", "courseCode": "CS", "year": 1},
    ],
    "assignments": [
        {"id": "A1", "name": "Balance sheet", "unitCode": "BM001", "deadline": "2024-03-01", "status": "closed"},
        {"id": "A2", "name": "Cash flow", "unitCode": "BM001", "deadline": "2024-05-01", "status": "open"},
        {"id": "A3", "name": "Loops", "unitCode": "CS101", "deadline": "2024-03-15", "status": "CLOSED"},
    ],
    "submissions": [
        {
            "submissionId": "SUB1",
            "studentId": "S1",
            "assignmentId": "A1",
            "submissionStatus": "submitted",
            "submissionName": "balance.pdf",
            "submittedAt": "2024-02-28T10:00:00Z",
            "grade": 80,
            "comment": "Solid",
            "gradedBy": "T1",
        },
        {
            "submissionId": "SUB2",
            "studentId": "S2",
            "assignmentId": "A1",
            "submissionStatus": "unsubmitted",
            "grade": None,
        },
        {
            "submissionId": "SUB3",
            "studentId": "S3",
            "assignmentId": "A3",
            "submissionStatus": "draft",
            "submissionName": "loops.py",
            "grade": None,
        },
    ],
    "progress": [
        {
            "studentId": "S1",
            "unitCode": "BM001",
            "week1Material": "done",
            "week2Material": "done",
            "week3Material": "not done",
            "week4Material": "not done",
        },
        {
            "studentId": "S2",
            "unitCode": "BM001",
            "week1Material": "not done",
            "week2Material": "not done",
            "week3Material": "not done",
            "week4Material": "not done",
        },
        {
            "studentId": "S3",
            "unitCode": "CS101",
            "week1Material": "done",
            "week2Material": "done",
            "week3Material": "done",
            "week4Material": "done",
        },
    ],
}


def sample_records() -> Dict[str, List[Dict[str, Any]]]:
    return copy.deepcopy(_SAMPLE)


def seeded_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(sample_records())


__all__ = ["sample_records", "seeded_store"]
