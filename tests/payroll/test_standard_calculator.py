from datetime import date, datetime, timezone
from decimal import Decimal

from src.qr_attendance.qr_attendance.checkin.model import AttendanceRecord
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus
from src.qr_attendance.qr_attendance.employees.model import WorkSchedule
from src.qr_attendance.qr_attendance.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.qr_attendance.qr_attendance.payroll.model import PayrollPeriod
from tests.fakes import make_employee

MARCH = PayrollPeriod(2026, 3)


def _record(check_out):
    return AttendanceRecord(
        employee_id=1,
        work_date=date(2026, 3, 2),
        check_in_time=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        check_out_time=check_out,
        status=AttendanceStatus.PRESENT,
    )


def test_gross_includes_allowances():
    calc = StandardPayrollCalculator()
    assert calc.gross_pay(make_employee(base_salary="6000", allowances="900")) == Decimal("6900.00")


def test_working_days_skip_the_weekend():
    # March 2026 has four Fridays and four Saturdays.
    calc = StandardPayrollCalculator()
    assert calc.working_days(make_employee(), MARCH) == 23
    assert calc.working_days(make_employee(schedule=WorkSchedule(weekend_days=(5, 6))), MARCH) == 22


def test_daily_rate():
    calc = StandardPayrollCalculator()
    assert calc.daily_rate(make_employee(base_salary="6900"), MARCH) == Decimal("300")


def test_daily_rate_without_working_days_is_zero():
    calc = StandardPayrollCalculator()
    employee = make_employee(schedule=WorkSchedule(weekend_days=tuple(range(7))))
    assert calc.daily_rate(employee, MARCH) == Decimal("0")


def test_worked_minutes():
    calc = StandardPayrollCalculator()
    assert calc.worked_minutes(_record(datetime(2026, 3, 2, 17, 0, tzinfo=timezone.utc))) == 8 * 60
    assert calc.worked_minutes(_record(None)) == 0
