"""Check-in state machine.

Per employee and calendar day a record moves ``NoRecord -> CheckedIn ->
Completed``. The only signal separating a duplicate scan from an
end-of-shift check-out is the time elapsed since check-in (see
``LOCKOUT_WINDOW``); the machine does not know the scheduled end of the
shift.

``evaluate_scan`` is pure: it returns the outcome plus the record to write,
and persisting that record atomically is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import ensure_aware
from ..core.constants import LOCKOUT_WINDOW
from ..core.enums import AttendanceStatus, RejectionReason, ScanResult
from ..deductions.engine import delay_minutes
from ..policy.model import AttendancePolicy
from . import geofence, token as token_codec
from .model import AttendanceRecord, Coordinate, ScanOutcome, rejected


@dataclass(frozen=True)
class ScanDecision:
    outcome: ScanOutcome
    write: Optional[AttendanceRecord] = None


def check_token(token: str, policy: AttendancePolicy, now: datetime, *, secret: Optional[str] = None) -> Optional[ScanOutcome]:
    """Rejection for a stale or malformed token, ``None`` when it is fresh."""
    check = token_codec.decode(token, now, policy.qr_lifespan_seconds, secret=secret)
    if isinstance(check, token_codec.Invalid):
        return rejected(RejectionReason.INVALID_TOKEN, f"Invalid QR code: {check.reason}.")
    if isinstance(check, token_codec.Expired):
        return rejected(RejectionReason.EXPIRED_TOKEN, "QR code has expired. Scan the current code and try again.")
    return None


def check_location(coordinate: Optional[Coordinate], policy: AttendancePolicy) -> Optional[ScanOutcome]:
    """Rejection when the geofence is on and the scan is not inside it."""
    if not policy.geofence_enabled:
        return None

    if coordinate is None:
        return rejected(
            RejectionReason.LOCATION_REQUIRED,
            "Location is required to register attendance. Enable location services and try again.",
        )

    site = Coordinate(policy.site_latitude, policy.site_longitude)
    result = geofence.validate(coordinate, site, policy.allowed_radius_meters)
    if isinstance(result, geofence.Outside):
        return rejected(
            RejectionReason.OUTSIDE_GEOFENCE,
            f"You must be within {policy.allowed_radius_meters:g} meters of the company to register attendance. "
            f"You are {round(result.distance_meters)} meters away.",
            distance_meters=result.distance_meters,
        )
    return None


def evaluate_scan(
    token: str,
    coordinate: Optional[Coordinate],
    policy: AttendancePolicy,
    todays_record: Optional[AttendanceRecord],
    now: datetime,
    *,
    employee_id: int,
    work_date: date,
    scheduled_start: Optional[datetime] = None,
    secret: Optional[str] = None,
) -> ScanDecision:
    now = ensure_aware(now)

    rejection = check_token(token, policy, now, secret=secret) or check_location(coordinate, policy)
    if rejection is not None:
        return ScanDecision(rejection)

    if todays_record is None:
        record = AttendanceRecord(
            employee_id=employee_id,
            work_date=work_date,
            check_in_time=now,
            check_out_time=None,
            status=AttendanceStatus.PRESENT,
            delay_minutes=delay_minutes(scheduled_start, now) if scheduled_start else 0,
            check_in_location=coordinate,
            version=1,
        )
        return ScanDecision(
            ScanOutcome(result=ScanResult.CHECKED_IN, message="Check-in registered.", at=now, record=record),
            write=record,
        )

    if todays_record.is_completed:
        return ScanDecision(
            ScanOutcome(
                result=ScanResult.DAY_ALREADY_COMPLETE,
                message="Attendance for today is already complete.",
                record=todays_record,
            )
        )

    check_in_time = ensure_aware(todays_record.check_in_time)
    if now - check_in_time < LOCKOUT_WINDOW:
        return ScanDecision(
            ScanOutcome(
                result=ScanResult.ALREADY_REGISTERED,
                message="You already checked in a short while ago.",
                at=check_in_time,
                record=todays_record,
            )
        )

    record = replace(
        todays_record,
        check_out_time=now,
        check_out_location=coordinate,
        version=todays_record.version + 1,
    )
    return ScanDecision(
        ScanOutcome(result=ScanResult.CHECKED_OUT, message="Check-out registered.", at=now, record=record),
        write=record,
    )
