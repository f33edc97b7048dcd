from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import ensure_aware, local_date, now_utc
from ..core import constants
from ..core.enums import AttendanceStatus, Permission, RejectionReason
from ..core.exceptions import ConcurrentWriteConflict, EmployeeNotFound, ValidationError
from ..employees.model import Identity
from ..employees.permissions import require_permission
from ..employees.schedule import scheduled_start
from ..employees.service import EmployeeService
from ..policy.service import PolicyService
from .model import AttendanceRecord, Coordinate, DailySummary, ScanOutcome, rejected
from .qr import IssuedToken, TokenIssuer
from .repository import AttendanceLedger
from .state_machine import evaluate_scan

logger = logging.getLogger(__name__)


class CheckInService:
    """Use case: turn a scanned QR code into an attendance event."""

    def __init__(
        self,
        attendance: AttendanceLedger,
        employees: EmployeeService,
        policies: PolicyService,
        *,
        signing_secret: Optional[str] = None,
        max_attempts: int = constants.DEFAULT_SCAN_MAX_ATTEMPTS,
    ):
        self._attendance = attendance
        self._employees = employees
        self._policies = policies
        self._secret = signing_secret or None
        self._max_attempts = max(1, int(max_attempts))
        self._issuer = TokenIssuer(secret=self._secret)

    def issue_token(self, identity: Identity, *, now: Optional[datetime] = None) -> IssuedToken:
        require_permission(identity, Permission.ISSUE_QR)
        policy = self._policies.get_current_policy()
        return self._issuer.issue(policy.qr_lifespan_seconds, now=now)

    def render_qr_png(self, token: str) -> bytes:
        return self._issuer.render_png(token)

    def scan(
        self,
        identity: Identity,
        token: str,
        coordinate: Optional[Coordinate] = None,
        *,
        now: Optional[datetime] = None,
    ) -> ScanOutcome:
        """Evaluate one scan and persist its effect.

        Validation failures come back as rejected outcomes. ``PolicyMissing``
        propagates, and ``ConcurrentWriteConflict`` propagates once the retry
        budget is spent.
        """

        require_permission(identity, Permission.SCAN)
        now = ensure_aware(now or now_utc())

        try:
            employee = self._employees.get_active(identity.employee_id)
        except EmployeeNotFound:
            logger.info("Scan rejected: employee %s not found", identity.employee_id)
            return rejected(RejectionReason.EMPLOYEE_NOT_FOUND, "Employee record not found.")

        policy = self._policies.get_current_policy()
        work_date = local_date(now, policy.tz)
        start = scheduled_start(employee, policy, work_date)

        for attempt in range(1, self._max_attempts + 1):
            current = self._attendance.get_record(employee.employee_id, work_date)
            decision = evaluate_scan(
                token,
                coordinate,
                policy,
                current,
                now,
                employee_id=employee.employee_id,
                work_date=work_date,
                scheduled_start=start,
                secret=self._secret,
            )
            outcome = decision.outcome

            if decision.write is not None:
                try:
                    if current is None:
                        self._attendance.insert_record(decision.write)
                    else:
                        self._attendance.update_record(decision.write, expected_version=current.version)
                except ConcurrentWriteConflict:
                    logger.warning(
                        "Write conflict for employee %s on %s (attempt %d/%d)",
                        employee.employee_id,
                        work_date,
                        attempt,
                        self._max_attempts,
                    )
                    continue

            logger.info(
                "Scan by employee %s on %s: %s%s",
                employee.employee_id,
                work_date,
                outcome.result.value,
                f" ({outcome.reason.value})" if outcome.reason else "",
            )
            return outcome

        raise ConcurrentWriteConflict(
            f"Could not record attendance for employee {employee.employee_id} after {self._max_attempts} attempts"
        )

    def mark_day(
        self,
        identity: Identity,
        *,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus,
    ) -> AttendanceRecord:
        """Record an absence or leave day for an employee with no record yet."""

        require_permission(identity, Permission.MARK_ATTENDANCE)
        status = AttendanceStatus(status)
        if status == AttendanceStatus.PRESENT:
            raise ValidationError("Presence is recorded by scanning the QR code")

        employee = self._employees.get_active(employee_id)
        record = AttendanceRecord(
            employee_id=employee.employee_id,
            work_date=work_date,
            check_in_time=None,
            check_out_time=None,
            status=status,
            version=1,
        )

        if self._attendance.get_record(employee.employee_id, work_date) is not None:
            raise ValidationError("Attendance already recorded for that day")
        try:
            self._attendance.insert_record(record)
        except ConcurrentWriteConflict:
            raise ValidationError("Attendance already recorded for that day")

        logger.info(
            "Employee %s marked %s on %s by %s",
            employee.employee_id,
            status.value,
            work_date,
            identity.employee_id,
        )
        return record

    def today(self, identity: Identity, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        require_permission(identity, Permission.VIEW_OWN_ATTENDANCE)
        policy = self._policies.get_current_policy()
        work_date = local_date(now or now_utc(), policy.tz)
        return self._attendance.get_record(identity.employee_id, work_date)

    def daily_summary(self, identity: Identity, *, now: Optional[datetime] = None) -> DailySummary:
        """Count today's present, absent and on-leave employees (policy timezone)."""

        require_permission(identity, Permission.VIEW_ATTENDANCE)
        policy = self._policies.get_current_policy()
        work_date = local_date(now or now_utc(), policy.tz)

        active = {e.employee_id for e in self._employees.list_active(identity)}
        records = [r for r in self._attendance.query_range(start=work_date, end=work_date) if r.employee_id in active]

        present = [r for r in records if r.status == AttendanceStatus.PRESENT]
        return DailySummary(
            work_date=work_date,
            total_employees=len(active),
            present=len(present),
            absent=sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
            on_leave=sum(1 for r in records if r.status == AttendanceStatus.ON_LEAVE),
            not_checked_in=len(active) - len(records),
            late=sum(1 for r in present if r.delay_minutes > 0),
        )

    def history(
        self,
        identity: Identity,
        *,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        if start > end:
            raise ValidationError("start must not be after end")

        if employee_id is not None and int(employee_id) == identity.employee_id:
            require_permission(identity, Permission.VIEW_OWN_ATTENDANCE)
        else:
            require_permission(identity, Permission.VIEW_ATTENDANCE)

        return self._attendance.query_range(start=start, end=end, employee_id=employee_id)
