from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import format_hhmm
from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Permission, Role
from ..core.exceptions import AuthenticationError, EmployeeNotFound, ValidationError
from .model import Employee, Identity, WorkSchedule
from .permissions import require_permission
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Identity provider: turns credentials into an ``Identity``."""

    def __init__(self, employees: EmployeeRepository):
        self._employees = employees

    def authenticate(self, username: str, password: str) -> Identity:
        employee = self._employees.get_by_username((username or "").strip())
        if not employee or not employee.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(employee.password_hash, password or "")
        except (TypeError, ValueError):
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            logger.info("Failed login for %r", username)
            raise AuthenticationError("Invalid username or password")

        return Identity(employee_id=employee.employee_id, role=employee.role)


class EmployeeService:
    """Use case: look up and manage employees."""

    def __init__(self, employees: EmployeeRepository):
        self._employees = employees

    def get_active(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise EmployeeNotFound(f"Employee {employee_id} not found")
        return employee

    def list_active(self, identity: Identity) -> Sequence[Employee]:
        require_permission(identity, Permission.VIEW_ATTENDANCE)
        return self._employees.list_active()

    def create_employee(
        self,
        identity: Identity,
        *,
        name: str,
        username: str,
        password: str,
        role: Role = Role.EMPLOYEE,
        base_salary: Any,
        allowances: Any = 0,
        job_title: Optional[str] = None,
        department: Optional[str] = None,
        work_schedule: Optional[WorkSchedule] = None,
    ) -> int:
        require_permission(identity, Permission.MANAGE_EMPLOYEES)

        name = require_non_empty(name, "Name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", 6)

        if self._employees.get_by_username(username):
            raise ValidationError("Username already exists")

        employee = Employee(
            employee_id=0,
            name=name,
            username=username,
            password_hash=generate_password_hash(password),
            role=Role(role),
            base_salary=_money(base_salary, "Base salary"),
            allowances=_money(allowances, "Allowances"),
            job_title=(job_title or "").strip() or None,
            department=(department or "").strip() or None,
            work_schedule=work_schedule or WorkSchedule(),
        )
        employee_id = self._employees.create_employee(employee)
        logger.info("Employee %s (%s) created by %s", employee_id, username, identity.employee_id)
        return employee_id


def _money(value: Any, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return amount


def employee_to_dict(employee: Employee) -> dict:
    schedule = employee.work_schedule
    return {
        "employee_id": employee.employee_id,
        "name": employee.name,
        "username": employee.username,
        "role": employee.role.value,
        "job_title": employee.job_title,
        "department": employee.department,
        "base_salary": str(employee.base_salary),
        "allowances": str(employee.allowances),
        "work_schedule": {
            "start_time": format_hhmm(schedule.start_time) if schedule.start_time else None,
            "end_time": format_hhmm(schedule.end_time) if schedule.end_time else None,
            "weekend_days": list(schedule.weekend_days),
        },
        "is_active": employee.is_active,
    }
