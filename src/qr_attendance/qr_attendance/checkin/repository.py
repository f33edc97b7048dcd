from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceLedger(Protocol):
    """Attendance records keyed by (employee_id, work_date).

    Writes are conditional so a scan can run as one atomic read-modify-write:
    both ``insert_record`` and ``update_record`` raise
    ``ConcurrentWriteConflict`` when the stored state is not the one the
    caller read.
    """

    def get_record(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_record(self, record: AttendanceRecord) -> None:
        """Create the day's record; conflict if one already exists."""

        raise NotImplementedError

    def update_record(self, record: AttendanceRecord, *, expected_version: int) -> None:
        """Replace the day's record only if its stored version is ``expected_version``."""

        raise NotImplementedError

    def query_range(
        self,
        *,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
