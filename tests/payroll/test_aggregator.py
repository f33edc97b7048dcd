from datetime import date, datetime, time, timezone
from decimal import Decimal

from src.qr_attendance.qr_attendance.checkin.model import AttendanceRecord
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus
from src.qr_attendance.qr_attendance.employees.model import WorkSchedule
from src.qr_attendance.qr_attendance.payroll.model import ExtraPay, PayrollPeriod
from src.qr_attendance.qr_attendance.payroll.service import PayrollAggregator
from tests.fakes import InMemoryPayrollLedger, make_employee, make_policy

MARCH = PayrollPeriod(2026, 3)
AS_OF = date(2026, 3, 4)


def _present(day, check_in, check_out=None, employee_id=1):
    return AttendanceRecord(
        employee_id=employee_id,
        work_date=day,
        check_in_time=datetime.combine(day, check_in, tzinfo=timezone.utc),
        check_out_time=datetime.combine(day, check_out, tzinfo=timezone.utc) if check_out else None,
        status=AttendanceStatus.PRESENT,
    )


def _marked(day, status, employee_id=1):
    return AttendanceRecord(
        employee_id=employee_id,
        work_date=day,
        check_in_time=None,
        check_out_time=None,
        status=status,
    )


def _attendance():
    return [
        _present(date(2026, 3, 1), time(9, 25), time(17, 0)),
        _present(date(2026, 3, 2), time(9, 5)),
        _marked(date(2026, 3, 3), AttendanceStatus.ABSENT),
    ]


def _build(policy, attendance, extras=None, employees=None, as_of=AS_OF):
    aggregator = PayrollAggregator(InMemoryPayrollLedger())
    return aggregator.build_payroll(
        employees or [make_employee(1, base_salary="6900")],
        attendance,
        policy,
        extras or {},
        MARCH,
        as_of=as_of,
    )


def test_flagged_absences_do_not_reduce_pay(policy):
    [record] = _build(policy, _attendance(), {1: ExtraPay(overtime=Decimal("100"), bonus=Decimal("50"))})

    assert record.gross_pay == Decimal("6900.00")
    assert record.deductions == Decimal("18.75")
    assert record.overtime == Decimal("150.00")
    assert record.net_pay == Decimal("7031.25")
    assert record.net_pay == record.gross_pay - record.deductions + record.overtime
    assert record.delay_minutes == 30
    assert record.late_days == 2
    assert record.absent_days == 2
    assert record.flags == (
        "missing_check_out:2026-03-02",
        "absent:2026-03-03",
        "absent:2026-03-04",
    )


def test_full_day_deduction_for_absences():
    policy = make_policy(absenceHandling="deduct_full_day")
    [record] = _build(policy, _attendance())

    assert record.deductions == Decimal("618.75")
    assert record.net_pay == Decimal("6281.25")
    assert record.absent_days == 2
    assert record.flags == ("missing_check_out:2026-03-02",)


def test_leave_days_are_not_absences(policy):
    attendance = _attendance() + [_marked(date(2026, 3, 4), AttendanceStatus.ON_LEAVE)]
    [record] = _build(policy, attendance)
    assert record.absent_days == 1


def test_days_after_as_of_are_ignored(policy):
    [record] = _build(policy, [], as_of=date(2026, 2, 28))
    assert record.absent_days == 0
    assert record.flags == ()


def test_weekend_check_in_is_not_lateness(policy):
    # 2026-03-06 is a Friday.
    [record] = _build(policy, [_present(date(2026, 3, 6), time(14, 0), time(16, 0))], as_of=date(2026, 2, 28))
    assert record.delay_minutes == 0
    assert record.deductions == Decimal("0.00")


def test_other_periods_records_are_ignored(policy):
    stray = _present(date(2026, 2, 26), time(11, 0), time(17, 0))
    [record] = _build(policy, [stray], as_of=date(2026, 2, 28))
    assert record.delay_minutes == 0


def test_negative_net_pay_is_flagged():
    policy = make_policy(deductionRules=[{"delayMinutes": 15, "deductionType": "amount", "deductionValue": 500}])
    employee = make_employee(1, base_salary="230")
    [record] = _build(policy, [_present(date(2026, 3, 2), time(10, 0), time(17, 0))], employees=[employee], as_of=date(2026, 2, 28))

    assert record.net_pay == Decimal("-270.00")
    assert "negative_net_pay" in record.flags


def test_employee_without_working_days_is_flagged(policy):
    employee = make_employee(1, schedule=WorkSchedule(weekend_days=tuple(range(7))))
    [record] = _build(policy, [], employees=[employee])

    assert record.absent_days == 0
    assert "no_working_days" in record.flags


def test_one_record_per_employee_sorted(policy):
    employees = [make_employee(3, name="Omar"), make_employee(1), make_employee(2, name="Mariam")]
    records = _build(policy, [], employees=employees, as_of=date(2026, 2, 28))

    assert [r.employee_id for r in records] == [1, 2, 3]
    assert all(r.period == "2026-03" for r in records)


def test_employee_schedule_overrides_company_start(policy):
    employee = make_employee(1, base_salary="6900", schedule=WorkSchedule(start_time=time(10, 0), end_time=time(18, 0)))
    [record] = _build(policy, [_present(date(2026, 3, 2), time(10, 20), time(18, 0))], employees=[employee], as_of=date(2026, 2, 28))

    assert record.delay_minutes == 20
    assert record.deductions == Decimal("0.00")
