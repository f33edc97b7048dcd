from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Optional

from ..core import constants
from ..core.enums import Role


@dataclass(frozen=True)
class WorkSchedule:
    """Per-employee schedule; ``None`` times fall back to the company hours."""

    start_time: Optional[time] = None
    end_time: Optional[time] = None
    weekend_days: tuple[int, ...] = constants.DEFAULT_WEEKEND_DAYS

    def is_working_day(self, day: date) -> bool:
        return day.weekday() not in self.weekend_days


@dataclass(frozen=True)
class Employee:
    """Domain entity: Employee.

    Plain data object (no DB access code).
    """

    employee_id: int
    name: str
    username: str
    password_hash: str
    role: Role
    base_salary: Decimal
    allowances: Decimal = Decimal("0")
    job_title: Optional[str] = None
    department: Optional[str] = None
    work_schedule: WorkSchedule = WorkSchedule()
    is_active: bool = True


@dataclass(frozen=True)
class Identity:
    """The resolved caller. Passed explicitly into every service call."""

    employee_id: int
    role: Role
