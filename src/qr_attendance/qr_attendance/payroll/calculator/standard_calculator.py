from __future__ import annotations

from decimal import Decimal

from .base import PayrollCalculator
from ...checkin.model import AttendanceRecord
from ...common.datetime_utils import ensure_aware
from ...deductions.engine import ZERO, to_money
from ...employees.model import Employee
from ..model import PayrollPeriod


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: monthly salary plus allowances, spread over working days."""

    def gross_pay(self, employee: Employee) -> Decimal:
        return to_money(Decimal(employee.base_salary) + Decimal(employee.allowances or 0))

    def working_days(self, employee: Employee, period: PayrollPeriod) -> int:
        return sum(1 for d in period.days() if employee.work_schedule.is_working_day(d))

    def daily_rate(self, employee: Employee, period: PayrollPeriod) -> Decimal:
        days = self.working_days(employee, period)
        if days <= 0:
            return ZERO
        # Unrounded: deductions round once at the end.
        return self.gross_pay(employee) / Decimal(days)

    def worked_minutes(self, record: AttendanceRecord) -> int:
        if not record.check_in_time or not record.check_out_time:
            return 0
        delta = ensure_aware(record.check_out_time) - ensure_aware(record.check_in_time)
        return max(int(delta.total_seconds() // 60), 0)
