from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, RejectionReason, ScanResult


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (employee, calendar day).

    ``version`` is bumped on every write so the ledger can reject a stale
    read-modify-write.
    """

    employee_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    delay_minutes: int = 0
    check_in_location: Optional[Coordinate] = None
    check_out_location: Optional[Coordinate] = None
    version: int = 0

    @property
    def is_completed(self) -> bool:
        return self.check_out_time is not None or self.check_in_time is None


@dataclass(frozen=True)
class ScanOutcome:
    """What a scan produced, returned to the scanning device."""

    result: ScanResult
    message: str
    at: Optional[datetime] = None
    reason: Optional[RejectionReason] = None
    distance_meters: Optional[float] = None
    record: Optional[AttendanceRecord] = None

    @property
    def accepted(self) -> bool:
        return self.result in (ScanResult.CHECKED_IN, ScanResult.CHECKED_OUT)

    @property
    def rejected(self) -> bool:
        return self.result == ScanResult.REJECTED


@dataclass(frozen=True)
class DailySummary:
    """Headcount for one day across active employees."""

    work_date: date
    total_employees: int
    present: int
    absent: int
    on_leave: int
    not_checked_in: int
    late: int


def rejected(reason: RejectionReason, message: str, *, distance_meters: Optional[float] = None) -> ScanOutcome:
    return ScanOutcome(result=ScanResult.REJECTED, message=message, reason=reason, distance_meters=distance_meters)


def record_to_dict(r: AttendanceRecord) -> dict:
    def _loc(c: Optional[Coordinate]):
        return {"latitude": c.latitude, "longitude": c.longitude} if c else None

    return {
        "employee_id": r.employee_id,
        "date": r.work_date.isoformat(),
        "check_in": r.check_in_time.isoformat() if r.check_in_time else None,
        "check_out": r.check_out_time.isoformat() if r.check_out_time else None,
        "status": r.status.value,
        "delay_minutes": r.delay_minutes,
        "check_in_location": _loc(r.check_in_location),
        "check_out_location": _loc(r.check_out_location),
    }


def outcome_to_dict(o: ScanOutcome) -> dict:
    return {
        "success": o.accepted,
        "action": o.result.value,
        "message": o.message,
        "at": o.at.isoformat() if o.at else None,
        "reason": o.reason.value if o.reason else None,
        "distance_meters": round(o.distance_meters) if o.distance_meters is not None else None,
        "record": record_to_dict(o.record) if o.record else None,
    }


def summary_to_dict(s: DailySummary) -> dict:
    return {
        "date": s.work_date.isoformat(),
        "total_employees": s.total_employees,
        "present": s.present,
        "absent": s.absent,
        "on_leave": s.on_leave,
        "not_checked_in": s.not_checked_in,
        "late": s.late,
    }
