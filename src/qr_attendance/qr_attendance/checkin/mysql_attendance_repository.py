from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..common.datetime_utils import ensure_aware, to_naive_utc
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConcurrentWriteConflict
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord, Coordinate
from .repository import AttendanceLedger

_COLUMNS = """
    employee_id, work_date, check_in_time, check_out_time, status, delay_minutes,
    check_in_lat, check_in_lng, check_out_lat, check_out_lng, version
"""


def _coord(lat, lng) -> Optional[Coordinate]:
    if lat is None or lng is None:
        return None
    return Coordinate(float(lat), float(lng))


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        check_in_time=ensure_aware(r["check_in_time"]) if r.get("check_in_time") else None,
        check_out_time=ensure_aware(r["check_out_time"]) if r.get("check_out_time") else None,
        status=AttendanceStatus(r["status"]),
        delay_minutes=int(r.get("delay_minutes") or 0),
        check_in_location=_coord(r.get("check_in_lat"), r.get("check_in_lng")),
        check_out_location=_coord(r.get("check_out_lat"), r.get("check_out_lng")),
        version=int(r.get("version") or 0),
    )


def _lat(c: Optional[Coordinate]):
    return c.latitude if c else None


def _lng(c: Optional[Coordinate]):
    return c.longitude if c else None


class MySQLAttendanceRepository(AttendanceLedger):
    """Attendance ledger on MySQL.

    ``UNIQUE(employee_id, work_date)`` makes the first insert win; updates are
    compare-and-swap on ``version``. Times are stored as naive UTC.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_record(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def insert_record(self, record: AttendanceRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        employee_id, work_date, check_in_time, check_out_time, status, delay_minutes,
                        check_in_lat, check_in_lng, check_out_lat, check_out_lng, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.employee_id,
                        record.work_date,
                        to_naive_utc(record.check_in_time),
                        to_naive_utc(record.check_out_time),
                        record.status.value,
                        record.delay_minutes,
                        _lat(record.check_in_location),
                        _lng(record.check_in_location),
                        _lat(record.check_out_location),
                        _lng(record.check_out_location),
                        record.version,
                    ),
                )
        except mysql.connector.Error as e:
            if is_duplicate_key(e):
                raise ConcurrentWriteConflict(
                    f"Attendance for employee {record.employee_id} on {record.work_date} was created concurrently"
                ) from e
            raise

    def update_record(self, record: AttendanceRecord, *, expected_version: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_out_time=%s, status=%s, delay_minutes=%s,
                    check_in_lat=%s, check_in_lng=%s, check_out_lat=%s, check_out_lng=%s,
                    version=%s
                WHERE employee_id=%s AND work_date=%s AND version=%s
                """,
                (
                    to_naive_utc(record.check_in_time),
                    to_naive_utc(record.check_out_time),
                    record.status.value,
                    record.delay_minutes,
                    _lat(record.check_in_location),
                    _lng(record.check_in_location),
                    _lat(record.check_out_location),
                    _lng(record.check_out_location),
                    record.version,
                    record.employee_id,
                    record.work_date,
                    int(expected_version),
                ),
            )
            if cur.rowcount == 0:
                raise ConcurrentWriteConflict(
                    f"Attendance for employee {record.employee_id} on {record.work_date} changed concurrently"
                )

    def query_range(
        self,
        *,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["work_date BETWEEN %s AND %s"]
        params: list[object] = [start, end]

        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC, employee_id ASC
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
