from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..checkin.model import AttendanceRecord
from ..checkin.repository import AttendanceLedger
from ..common.datetime_utils import ensure_aware, local_date, now_utc
from ..core.enums import AbsenceHandling, AttendanceStatus, Permission
from ..core.exceptions import AlreadyDisbursed, ValidationError
from ..deductions.engine import ZERO, compute_period_deduction, to_money
from ..employees.model import Employee, Identity
from ..employees.permissions import require_permission
from ..employees.repository import EmployeeRepository
from ..employees.schedule import scheduled_start, working_minutes_per_day
from ..policy.model import AttendancePolicy
from ..policy.service import PolicyService
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import ExtraPay, PayrollHistory, PayrollPeriod, PayrollRecord
from .narrative import NarrativePayrollAssistant
from .repository import PayrollLedger

logger = logging.getLogger(__name__)

FLAG_ABSENT = "absent"
FLAG_MISSING_CHECK_OUT = "missing_check_out"
FLAG_NEGATIVE_NET_PAY = "negative_net_pay"
FLAG_NO_WORKING_DAYS = "no_working_days"


class PayrollAggregator:
    """Folds attendance, policy and extra pay into per-employee payroll records."""

    def __init__(self, ledger: PayrollLedger, *, calculator: Optional[PayrollCalculator] = None):
        self._ledger = ledger
        self._calculator = calculator or StandardPayrollCalculator()

    @property
    def calculator(self) -> PayrollCalculator:
        return self._calculator

    def build_payroll(
        self,
        employees: Sequence[Employee],
        attendance: Sequence[AttendanceRecord],
        policy: AttendancePolicy,
        extras: Mapping[int, ExtraPay],
        period: PayrollPeriod,
        *,
        as_of: Optional[date] = None,
    ) -> list[PayrollRecord]:
        """Compute one record per employee.

        Working days up to ``as_of`` (default: the period end) with no record,
        or with an ``absent`` record, count as absences. ``on_leave`` days are
        neither late nor absent. Days before ``as_of`` that have a check-in
        but no check-out are flagged for review.
        """

        last_day = min(as_of, period.end) if as_of else period.end
        by_employee: dict[int, dict[date, AttendanceRecord]] = defaultdict(dict)
        for r in attendance:
            if period.start <= r.work_date <= period.end:
                by_employee[r.employee_id][r.work_date] = r

        out = [
            self._build_one(employee, by_employee.get(employee.employee_id, {}), policy, extras, period, last_day)
            for employee in employees
        ]
        out.sort(key=lambda x: x.employee_id)
        return out

    def _build_one(
        self,
        employee: Employee,
        days: Mapping[date, AttendanceRecord],
        policy: AttendancePolicy,
        extras: Mapping[int, ExtraPay],
        period: PayrollPeriod,
        last_day: date,
    ) -> PayrollRecord:
        calc = self._calculator
        gross = calc.gross_pay(employee)
        daily_rate = calc.daily_rate(employee, period)
        flags: list[str] = []

        entries: list[tuple[datetime, datetime]] = []
        for work_date, r in sorted(days.items()):
            if r.status != AttendanceStatus.PRESENT or r.check_in_time is None:
                continue
            start = scheduled_start(employee, policy, work_date)
            # A check-in on a day off is not lateness.
            if start is not None:
                entries.append((start, r.check_in_time))
            if r.check_out_time is None and work_date < last_day:
                flags.append(f"{FLAG_MISSING_CHECK_OUT}:{work_date.isoformat()}")

        absent: list[date] = []
        for day in period.days():
            if day > last_day:
                break
            if not employee.work_schedule.is_working_day(day):
                continue
            r = days.get(day)
            if r is None or r.status == AttendanceStatus.ABSENT:
                absent.append(day)

        if calc.working_days(employee, period) == 0:
            flags.append(FLAG_NO_WORKING_DAYS)

        lateness = compute_period_deduction(
            entries,
            policy,
            daily_rate=daily_rate,
            working_minutes_per_day=working_minutes_per_day(employee, policy),
        )

        deductions = lateness.total_amount
        if policy.absence_handling == AbsenceHandling.DEDUCT_FULL_DAY:
            deductions += daily_rate * len(absent)
        else:
            flags.extend(f"{FLAG_ABSENT}:{d.isoformat()}" for d in absent)
        deductions = to_money(deductions)

        overtime = to_money(extras.get(employee.employee_id, ExtraPay()).total)
        net = to_money(gross - deductions + overtime)
        if net < ZERO:
            flags.append(FLAG_NEGATIVE_NET_PAY)

        return PayrollRecord(
            employee_id=employee.employee_id,
            employee_name=employee.name,
            period=period.label,
            gross_pay=gross,
            deductions=deductions,
            overtime=overtime,
            net_pay=net,
            delay_minutes=lateness.total_delay_minutes,
            late_days=lateness.late_days,
            absent_days=len(absent),
            flags=tuple(flags),
        )

    def disburse(
        self,
        records: Sequence[PayrollRecord],
        period: PayrollPeriod,
        *,
        now: Optional[datetime] = None,
    ) -> PayrollHistory:
        """Freeze ``records`` into the period's ledger entry.

        The ledger insert is the atomic step; the lookup before it only gives
        a clean error without building the entry.
        """

        if self._ledger.get_history(period) is not None:
            raise AlreadyDisbursed(period.label)

        stray = [r.employee_id for r in records if r.period != period.label]
        if stray:
            raise ValidationError(f"Records for employees {stray} do not belong to {period.label}")

        entry = PayrollHistory(
            period=period,
            generated_at=ensure_aware(now or now_utc()),
            total_net_pay=to_money(sum((r.net_pay for r in records), Decimal("0"))),
            records=tuple(records),
        )
        self._ledger.create_history(entry)
        logger.info(
            "Payroll for %s disbursed: %d records, total net %s",
            period.label,
            len(entry.records),
            entry.total_net_pay,
        )
        return entry


class PayrollService:
    """Use case: preview, disburse and explain payroll for a period."""

    def __init__(
        self,
        employees: EmployeeRepository,
        attendance: AttendanceLedger,
        policies: PolicyService,
        ledger: PayrollLedger,
        *,
        aggregator: Optional[PayrollAggregator] = None,
        narrative: Optional[NarrativePayrollAssistant] = None,
    ):
        self._employees = employees
        self._attendance = attendance
        self._policies = policies
        self._ledger = ledger
        self._aggregator = aggregator or PayrollAggregator(ledger)
        self._narrative = narrative

    def generate(
        self,
        identity: Identity,
        period: PayrollPeriod,
        extras: Optional[Mapping[int, ExtraPay]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> list[PayrollRecord]:
        require_permission(identity, Permission.RUN_PAYROLL)
        return self._build(period, extras or {}, now=now)

    def disburse(
        self,
        identity: Identity,
        period: PayrollPeriod,
        extras: Optional[Mapping[int, ExtraPay]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> PayrollHistory:
        require_permission(identity, Permission.DISBURSE_PAYROLL)
        records = self._build(period, extras or {}, now=now)
        try:
            return self._aggregator.disburse(records, period, now=now)
        except AlreadyDisbursed:
            logger.warning("Disbursement for %s refused: already disbursed", period.label)
            raise

    def history(self, identity: Identity, period: Optional[PayrollPeriod] = None) -> Sequence[PayrollHistory]:
        require_permission(identity, Permission.VIEW_PAYROLL_HISTORY)
        if period is None:
            return self._ledger.list_history()
        entry = self._ledger.get_history(period)
        return [entry] if entry else []

    def narrative(
        self,
        identity: Identity,
        period: PayrollPeriod,
        extras: Optional[Mapping[int, ExtraPay]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Any:
        require_permission(identity, Permission.RUN_PAYROLL)
        if self._narrative is None:
            raise ValidationError("Narrative payroll service is not available")

        records = self._build(period, extras or {}, now=now)
        attendance = self._attendance.query_range(start=period.start, end=period.end)
        worked: dict[int, int] = defaultdict(int)
        for r in attendance:
            worked[r.employee_id] += self._aggregator.calculator.worked_minutes(r)

        payload = [
            {
                "employeeId": str(r.employee_id),
                "name": r.employee_name,
                "hoursWorked": round(worked[r.employee_id] / 60, 2),
                "grossPay": float(r.gross_pay),
                "deductions": float(r.deductions),
                "overtime": float(r.overtime),
                "netPay": float(r.net_pay),
                "delayMinutes": r.delay_minutes,
                "lateDays": r.late_days,
                "absentDays": r.absent_days,
                "notes": ", ".join(r.flags),
            }
            for r in records
        ]
        return self._narrative.explain(period.label, payload)

    def _build(
        self,
        period: PayrollPeriod,
        extras: Mapping[int, ExtraPay],
        *,
        now: Optional[datetime] = None,
    ) -> list[PayrollRecord]:
        policy = self._policies.get_current_policy()
        today = local_date(now or now_utc(), policy.tz)
        # Days after today have not happened yet, so they cannot be absences.
        as_of = min(period.end, today) if today >= period.start else period.start - timedelta(days=1)

        employees = self._employees.list_active()
        attendance = self._attendance.query_range(start=period.start, end=period.end)
        records = self._aggregator.build_payroll(employees, attendance, policy, extras, period, as_of=as_of)
        logger.info("Payroll for %s computed for %d employees", period.label, len(records))
        return records


def parse_extras(raw: Any) -> dict[int, ExtraPay]:
    """``{"<employee_id>": {"overtime": n, "bonus": n}}`` or a list of such rows."""

    if not raw:
        return {}

    if isinstance(raw, Mapping):
        items = [(k, v) for k, v in raw.items()]
    elif isinstance(raw, list):
        items = [((row or {}).get("employee_id"), row) for row in raw]
    else:
        raise ValidationError("extras must be an object or a list")

    out: dict[int, ExtraPay] = {}
    for key, value in items:
        try:
            employee_id = int(key)
            overtime = Decimal(str((value or {}).get("overtime", 0) or 0))
            bonus = Decimal(str((value or {}).get("bonus", 0) or 0))
        except (TypeError, ValueError, ArithmeticError, AttributeError):
            raise ValidationError(f"Invalid extra pay entry for {key!r}")
        if overtime < 0 or bonus < 0:
            raise ValidationError("Overtime and bonus must not be negative")
        out[employee_id] = ExtraPay(overtime=overtime, bonus=bonus)
    return out
