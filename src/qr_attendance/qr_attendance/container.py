from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .checkin.mysql_attendance_repository import MySQLAttendanceRepository
from .checkin.repository import AttendanceLedger
from .checkin.service import CheckInService
from .core import constants
from .database.connection import DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import AuthService, EmployeeService
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.narrative import NarrativePayrollAssistant
from .payroll.repository import PayrollLedger
from .payroll.service import PayrollAggregator, PayrollService
from .policy.mysql_policy_repository import MySQLPolicyRepository
from .policy.repository import PolicyRepository
from .policy.service import PolicyService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    employees_repo: EmployeeRepository
    attendance_repo: AttendanceLedger
    policy_repo: PolicyRepository
    payroll_repo: PayrollLedger

    auth_service: AuthService
    employee_service: EmployeeService
    policy_service: PolicyService
    checkin_service: CheckInService
    payroll_service: PayrollService


def wire_container(
    *,
    employees_repo: EmployeeRepository,
    attendance_repo: AttendanceLedger,
    policy_repo: PolicyRepository,
    payroll_repo: PayrollLedger,
    conn: Optional[DatabaseConnection] = None,
    signing_secret: Optional[str] = None,
    scan_max_attempts: int = constants.DEFAULT_SCAN_MAX_ATTEMPTS,
    narrative: Optional[NarrativePayrollAssistant] = None,
) -> Container:
    """Build the services on top of any set of repositories."""

    auth_service = AuthService(employees_repo)
    employee_service = EmployeeService(employees_repo)
    policy_service = PolicyService(policy_repo)
    checkin_service = CheckInService(
        attendance_repo,
        employee_service,
        policy_service,
        signing_secret=signing_secret,
        max_attempts=scan_max_attempts,
    )
    payroll_service = PayrollService(
        employees_repo,
        attendance_repo,
        policy_service,
        payroll_repo,
        aggregator=PayrollAggregator(payroll_repo),
        narrative=narrative,
    )

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        attendance_repo=attendance_repo,
        policy_repo=policy_repo,
        payroll_repo=payroll_repo,
        auth_service=auth_service,
        employee_service=employee_service,
        policy_service=policy_service,
        checkin_service=checkin_service,
        payroll_service=payroll_service,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.from_dict(db_config)

    narrative = None
    narrative_url = getattr(settings, "NARRATIVE_SERVICE_URL", None)
    if narrative_url:
        narrative = NarrativePayrollAssistant(
            narrative_url,
            api_key=getattr(settings, "NARRATIVE_API_KEY", None),
            timeout=float(getattr(settings, "NARRATIVE_TIMEOUT_SECONDS", 30)),
        )

    return wire_container(
        employees_repo=MySQLEmployeeRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        policy_repo=MySQLPolicyRepository(conn),
        payroll_repo=MySQLPayrollRepository(conn),
        conn=conn,
        signing_secret=getattr(settings, "QR_SIGNING_SECRET", None),
        scan_max_attempts=int(getattr(settings, "SCAN_MAX_ATTEMPTS", constants.DEFAULT_SCAN_MAX_ATTEMPTS)),
        narrative=narrative,
    )
