from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import at_wall_clock, minutes_between
from ..policy.model import AttendancePolicy
from .model import Employee


def scheduled_start(employee: Employee, policy: AttendancePolicy, work_date: date) -> Optional[datetime]:
    """Start of the employee's shift on ``work_date``; ``None`` on a day off."""
    schedule = employee.work_schedule
    if not schedule.is_working_day(work_date):
        return None
    return at_wall_clock(work_date, schedule.start_time or policy.company_start_time, policy.tz)


def working_minutes_per_day(employee: Employee, policy: AttendancePolicy) -> int:
    schedule = employee.work_schedule
    if schedule.start_time and schedule.end_time:
        return minutes_between(schedule.start_time, schedule.end_time)
    return policy.working_minutes_per_day
