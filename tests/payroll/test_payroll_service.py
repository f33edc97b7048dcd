from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.qr_attendance.qr_attendance.checkin.model import AttendanceRecord
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus, Role
from src.qr_attendance.qr_attendance.core.exceptions import AlreadyDisbursed, AuthorizationError, ValidationError
from src.qr_attendance.qr_attendance.employees.model import Identity
from src.qr_attendance.qr_attendance.payroll import narrative as narrative_module
from src.qr_attendance.qr_attendance.payroll.model import ExtraPay, PayrollPeriod
from src.qr_attendance.qr_attendance.payroll.narrative import NarrativePayrollAssistant
from src.qr_attendance.qr_attendance.payroll.service import PayrollService, parse_extras
from src.qr_attendance.qr_attendance.policy.service import PolicyService
from tests.fakes import InMemoryAttendance, InMemoryEmployees, InMemoryPayrollLedger, InMemoryPolicies, make_employee

ADMIN = Identity(1, Role.ADMIN)
MANAGER = Identity(2, Role.MANAGER)
EMPLOYEE = Identity(3, Role.EMPLOYEE)
MARCH = PayrollPeriod(2026, 3)


def _service(policy, *, narrative=None):
    employees = InMemoryEmployees(
        make_employee(1, role=Role.ADMIN, base_salary="6900"),
        make_employee(2, role=Role.MANAGER, base_salary="6900"),
        make_employee(3, base_salary="6900"),
    )
    start = datetime(2026, 3, 2, 9, 25, tzinfo=timezone.utc)
    attendance = InMemoryAttendance(
        AttendanceRecord(
            employee_id=3,
            work_date=start.date(),
            check_in_time=start,
            check_out_time=start + timedelta(hours=8),
            status=AttendanceStatus.PRESENT,
            delay_minutes=25,
            version=2,
        )
    )
    ledger = InMemoryPayrollLedger()
    svc = PayrollService(employees, attendance, PolicyService(InMemoryPolicies(policy)), ledger, narrative=narrative)
    return svc, ledger


def test_generate_counts_absences_only_up_to_today(policy, fixed_now):
    svc, _ = _service(policy)
    records = {r.employee_id: r for r in svc.generate(MANAGER, MARCH, now=fixed_now)}

    # Today is 2026-03-02: Mar 1 and Mar 2 are the elapsed working days.
    assert records[3].absent_days == 1
    assert records[3].deductions == Decimal("18.75")
    assert records[1].absent_days == 2


def test_future_period_has_no_absences(policy, fixed_now):
    svc, _ = _service(policy)
    records = svc.generate(MANAGER, PayrollPeriod(2026, 5), now=fixed_now)
    assert all(r.absent_days == 0 for r in records)


def test_employee_cannot_run_payroll(policy, fixed_now):
    svc, _ = _service(policy)
    with pytest.raises(AuthorizationError):
        svc.generate(EMPLOYEE, MARCH, now=fixed_now)


def test_only_admin_disburses(policy, fixed_now):
    svc, ledger = _service(policy)
    with pytest.raises(AuthorizationError):
        svc.disburse(MANAGER, MARCH, now=fixed_now)

    entry = svc.disburse(ADMIN, MARCH, {3: ExtraPay(bonus=Decimal("100"))}, now=fixed_now)
    assert ledger.get_history(MARCH) is entry
    assert {r.employee_id: r.overtime for r in entry.records}[3] == Decimal("100.00")

    with pytest.raises(AlreadyDisbursed):
        svc.disburse(ADMIN, MARCH, now=fixed_now)


def test_history_listing(policy, fixed_now):
    svc, _ = _service(policy)
    svc.disburse(ADMIN, MARCH, now=fixed_now)

    assert [h.period.label for h in svc.history(MANAGER)] == ["2026-03"]
    assert svc.history(MANAGER, PayrollPeriod(2026, 2)) == []
    with pytest.raises(AuthorizationError):
        svc.history(EMPLOYEE)


def test_narrative_requires_a_configured_client(policy, fixed_now):
    svc, _ = _service(policy)
    with pytest.raises(ValidationError):
        svc.narrative(MANAGER, MARCH, now=fixed_now)


def test_narrative_sends_deterministic_figures(policy, fixed_now, monkeypatch):
    sent = {}

    class FakeResponse:
        status_code = 200
        text = ""

        def json(self):
            return {"payrollDetails": '[{"employeeId": "3", "explanation": "Late once."}]'}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse()

    monkeypatch.setattr(narrative_module.requests, "post", fake_post)
    client = NarrativePayrollAssistant("http://narrative.local/payroll", api_key="k", timeout=3)
    svc, _ = _service(policy, narrative=client)

    details = svc.narrative(MANAGER, MARCH, now=fixed_now)

    assert details == [{"employeeId": "3", "explanation": "Late once."}]
    assert sent["url"] == "http://narrative.local/payroll"
    assert sent["headers"]["Authorization"] == "Bearer k"
    assert sent["timeout"] == 3
    assert sent["json"]["payrollPeriod"] == "2026-03"
    assert '"hoursWorked": 8.0' in sent["json"]["employeeRecords"]


def test_parse_extras_accepts_object_and_list():
    assert parse_extras({"3": {"overtime": "10", "bonus": 5}}) == {3: ExtraPay(Decimal("10"), Decimal("5"))}
    assert parse_extras([{"employee_id": 2, "bonus": "7.5"}]) == {2: ExtraPay(Decimal("0"), Decimal("7.5"))}
    assert parse_extras(None) == {}


@pytest.mark.parametrize("raw", ["oops", {"x": {}}, {"1": {"overtime": "abc"}}, {"1": {"bonus": -1}}])
def test_parse_extras_rejects_bad_input(raw):
    with pytest.raises(ValidationError):
        parse_extras(raw)


def test_period_label_parsing():
    assert PayrollPeriod.parse("2026-03") == MARCH
    assert MARCH.end == date(2026, 3, 31)
    with pytest.raises(ValidationError):
        PayrollPeriod.parse("2026-13")
    with pytest.raises(ValidationError):
        PayrollPeriod.parse("March 2026")
