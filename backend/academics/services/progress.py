"""Weekly material tracking per (student, unit)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Union

from ..domain import WEEK_COUNT, MaterialStatus, StudentProgress, parse_status
from ..errors import NotFoundError, ValidationError
from ..store import PROGRESS, RecordStoreProtocol, load_records, save_records

logger = logging.getLogger("unitrack.academics.progress")

DEFAULT_UPDATER = "coordinator"


def _validate_week(week_number: object) -> int:
    if isinstance(week_number, bool) or not isinstance(week_number, int):
        raise ValidationError("invalid_week_number")
    if not 1 <= week_number <= WEEK_COUNT:
        raise ValidationError("invalid_week_number")
    return week_number


@dataclass
class ProgressService:
    store: RecordStoreProtocol

    def _records(self) -> List[StudentProgress]:
        return load_records(self.store, PROGRESS, StudentProgress.from_record)

    def update_week_material(
        self,
        student_id: str,
        unit_code: str,
        week_number: int,
        status: Union[str, MaterialStatus],
        updated_by: Optional[str] = None,
    ) -> StudentProgress:
        """Mark one week's material as done / not done.

        Raises:
            ValidationError: week outside 1..4 or an unknown status.
            NotFoundError: no progress record for the (student, unit) pair.
        """
        week = _validate_week(week_number)
        material = parse_status(MaterialStatus, status)
        records = self._records()
        record = next(
            (r for r in records if r.student_id == student_id and r.unit_code == unit_code),
            None,
        )
        if record is None:
            raise NotFoundError("progress_not_found")
        record.set_week(week, material)
        record.updated_by = updated_by or DEFAULT_UPDATER
        record.last_updated = datetime.now(timezone.utc).isoformat()
        save_records(self.store, PROGRESS, records)
        logger.info(
            "academics.progress.updated student=%s unit=%s week=%s status=%s",
            student_id,
            unit_code,
            week,
            material.value,
        )
        return record

    def progress_for_student(self, student_id: str) -> List[StudentProgress]:
        return [r for r in self._records() if r.student_id == student_id]

    def progress_for_unit(self, unit_code: str) -> List[StudentProgress]:
        return [r for r in self._records() if r.unit_code == unit_code]


__all__ = ["DEFAULT_UPDATER", "ProgressService"]
