from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Employee, WorkSchedule
from .repository import EmployeeRepository

_COLUMNS = """
    employee_id, name, username, password_hash, role, job_title, department,
    base_salary, allowances, schedule_start, schedule_end, weekend_days, is_active
"""


def _parse_weekend_days(value: Optional[str]) -> tuple[int, ...]:
    # Stored as a comma separated list of weekday numbers, e.g. "4,5".
    if not value:
        return ()
    return tuple(int(p) for p in str(value).split(",") if p.strip())


def _row_to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        name=r["name"],
        username=r["username"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        job_title=r.get("job_title"),
        department=r.get("department"),
        base_salary=Decimal(str(r["base_salary"])),
        allowances=Decimal(str(r.get("allowances") or 0)),
        work_schedule=WorkSchedule(
            start_time=normalize_mysql_time(r.get("schedule_start")),
            end_time=normalize_mysql_time(r.get("schedule_end")),
            weekend_days=_parse_weekend_days(r.get("weekend_days")),
        ),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def get_by_username(self, username: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE username=%s", (username,))
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY employee_id")
            return [_row_to_employee(r) for r in fetchall(cur)]

    def create_employee(self, employee: Employee) -> int:
        schedule = employee.work_schedule
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employees(
                    name, username, password_hash, role, job_title, department,
                    base_salary, allowances, schedule_start, schedule_end, weekend_days, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    employee.name,
                    employee.username,
                    employee.password_hash,
                    employee.role.value,
                    employee.job_title,
                    employee.department,
                    employee.base_salary,
                    employee.allowances,
                    schedule.start_time,
                    schedule.end_time,
                    ",".join(str(d) for d in schedule.weekend_days),
                    int(employee.is_active),
                ),
            )
            return int(cur.lastrowid)
