"""Record store interface for academic collections."""
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, TypeVar

from .errors import StoreError

COURSES = "courses"
UNITS = "units"
TEACHERS = "teachers"
COORDINATORS = "coordinators"
ASSIGNMENTS = "assignments"
SUBMISSIONS = "submissions"
PROGRESS = "progress"
STUDENTS = "students"

COLLECTIONS = (COURSES, UNITS, TEACHERS, COORDINATORS, ASSIGNMENTS, SUBMISSIONS, PROGRESS, STUDENTS)

Record = Dict[str, Any]
T = TypeVar("T")


class RecordStoreProtocol(Protocol):
    """Whole-collection load/replace, both atomic from the caller's view.

    Implementations raise ``StoreError`` when the backing medium fails.
    """

    def load(self, collection: str) -> List[Record]: ...

    def save(self, collection: str, records: List[Record]) -> None: ...


class _Persistable(Protocol):
    def to_record(self) -> Record: ...


def ensure_collection(name: str) -> str:
    if name not in COLLECTIONS:
        raise ValueError(f"unknown_collection: {name!r}")
    return name


def load_records(store: RecordStoreProtocol, collection: str, factory: Callable[[Mapping[str, Any]], T]) -> List[T]:
    """Load a collection and convert every record with ``factory``."""
    return [factory(record) for record in store.load(collection) if isinstance(record, Mapping)]


def save_records(store: RecordStoreProtocol, collection: str, items: Iterable[_Persistable]) -> None:
    store.save(collection, [item.to_record() for item in items])


class InMemoryRecordStore:
    """Process-local store for tests and offline development.

    Load and save copy the records so callers can never mutate stored state
    without going through ``save``.
    """

    def __init__(self, initial: Optional[Mapping[str, Iterable[Record]]] = None) -> None:
        self._data: Dict[str, List[Record]] = {name: [] for name in COLLECTIONS}
        for name, records in (initial or {}).items():
            self._data[ensure_collection(name)] = copy.deepcopy(list(records))

    def load(self, collection: str) -> List[Record]:
        return copy.deepcopy(self._data[ensure_collection(collection)])

    def save(self, collection: str, records: List[Record]) -> None:
        if not isinstance(records, list):
            raise StoreError("records_must_be_list")
        self._data[ensure_collection(collection)] = copy.deepcopy(records)


__all__ = [
    "COURSES",
    "UNITS",
    "TEACHERS",
    "COORDINATORS",
    "ASSIGNMENTS",
    "SUBMISSIONS",
    "PROGRESS",
    "STUDENTS",
    "COLLECTIONS",
    "Record",
    "RecordStoreProtocol",
    "ensure_collection",
    "load_records",
    "save_records",
    "InMemoryRecordStore",
]
