"""In-memory repositories shared by the test modules."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from src.qr_attendance.qr_attendance.checkin.model import AttendanceRecord
from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.core.exceptions import AlreadyDisbursed, ConcurrentWriteConflict
from src.qr_attendance.qr_attendance.employees.model import Employee, WorkSchedule
from src.qr_attendance.qr_attendance.payroll.model import PayrollHistory, PayrollPeriod
from src.qr_attendance.qr_attendance.policy.model import AttendancePolicy, policy_from_dict

SITE_LAT = 30.0444
SITE_LNG = 31.2357


def make_policy(**overrides) -> AttendancePolicy:
    settings = {
        "companyStartTime": "09:00",
        "companyEndTime": "17:00",
        "gracePeriod": 10,
        "gracePeriodType": "daily",
        "deductionRules": [
            {"delayMinutes": 15, "deductionType": "minutes", "deductionValue": 30, "period": "daily"},
            {"delayMinutes": 30, "deductionType": "hours", "deductionValue": 1, "period": "daily"},
        ],
        "geofenceEnabled": True,
        "companyLatitude": SITE_LAT,
        "companyLongitude": SITE_LNG,
        "allowedRadiusMeters": 200,
        "qrCodeLifespan": 15,
        "timezone": "UTC",
    }
    settings.update(overrides)
    return policy_from_dict(settings)


def make_employee(
    employee_id: int = 1,
    *,
    name: str = "Ahmed",
    role: Role = Role.EMPLOYEE,
    base_salary: str = "6600",
    allowances: str = "0",
    password_hash: str = "CHANGE_ME",
    schedule: Optional[WorkSchedule] = None,
    is_active: bool = True,
) -> Employee:
    return Employee(
        employee_id=employee_id,
        name=name,
        username=f"user{employee_id}",
        password_hash=password_hash,
        role=role,
        base_salary=Decimal(base_salary),
        allowances=Decimal(allowances),
        work_schedule=schedule or WorkSchedule(),
        is_active=is_active,
    )


class InMemoryEmployees:
    def __init__(self, *employees: Employee):
        self._by_id: dict[int, Employee] = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._by_id.get(employee_id)

    def get_by_username(self, username: str) -> Optional[Employee]:
        return next((e for e in self._by_id.values() if e.username == username), None)

    def list_active(self):
        return [e for e in sorted(self._by_id.values(), key=lambda e: e.employee_id) if e.is_active]

    def create_employee(self, employee: Employee) -> int:
        new_id = max(self._by_id, default=0) + 1
        self._by_id[new_id] = replace(employee, employee_id=new_id)
        return new_id


class InMemoryAttendance:
    """Same conditional-write contract as the MySQL ledger."""

    def __init__(self, *records: AttendanceRecord):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[int, date], AttendanceRecord] = {(r.employee_id, r.work_date): r for r in records}

    def get_record(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_key.get((employee_id, work_date))

    def insert_record(self, record: AttendanceRecord) -> None:
        with self._lock:
            key = (record.employee_id, record.work_date)
            if key in self._by_key:
                raise ConcurrentWriteConflict("exists")
            self._by_key[key] = record

    def update_record(self, record: AttendanceRecord, *, expected_version: int) -> None:
        with self._lock:
            key = (record.employee_id, record.work_date)
            current = self._by_key.get(key)
            if current is None or current.version != expected_version:
                raise ConcurrentWriteConflict("stale")
            self._by_key[key] = record

    def query_range(self, *, start: date, end: date, employee_id: Optional[int] = None):
        with self._lock:
            items = [
                r
                for r in self._by_key.values()
                if start <= r.work_date <= end and (employee_id is None or r.employee_id == employee_id)
            ]
        return sorted(items, key=lambda r: (r.work_date, r.employee_id))

    def all(self) -> list[AttendanceRecord]:
        with self._lock:
            return list(self._by_key.values())


class RacingAttendance(InMemoryAttendance):
    """Holds the first ``parties`` reads until all of them arrive, forcing a race."""

    def __init__(self, parties: int, *records: AttendanceRecord):
        super().__init__(*records)
        self._barrier = threading.Barrier(parties, timeout=5)
        self._gated = parties
        self._gate_lock = threading.Lock()

    def get_record(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with self._gate_lock:
            wait = self._gated > 0
            self._gated -= 1
        result = super().get_record(employee_id, work_date)
        if wait:
            self._barrier.wait()
        return result


class AlwaysConflictingAttendance(InMemoryAttendance):
    def __init__(self, *records: AttendanceRecord):
        super().__init__(*records)
        self.attempts = 0

    def insert_record(self, record: AttendanceRecord) -> None:
        self.attempts += 1
        raise ConcurrentWriteConflict("busy")

    def update_record(self, record: AttendanceRecord, *, expected_version: int) -> None:
        self.attempts += 1
        raise ConcurrentWriteConflict("busy")


class InMemoryPolicies:
    def __init__(self, policy: Optional[AttendancePolicy] = None):
        self.policy = policy

    def get_current(self) -> Optional[AttendancePolicy]:
        return self.policy

    def save(self, policy: AttendancePolicy) -> None:
        self.policy = policy


class InMemoryPayrollLedger:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_label: dict[str, PayrollHistory] = {}

    def get_history(self, period: PayrollPeriod) -> Optional[PayrollHistory]:
        with self._lock:
            return self._by_label.get(period.label)

    def create_history(self, entry: PayrollHistory) -> None:
        with self._lock:
            if entry.period.label in self._by_label:
                raise AlreadyDisbursed(entry.period.label)
            self._by_label[entry.period.label] = entry

    def list_history(self):
        with self._lock:
            return [self._by_label[k] for k in sorted(self._by_label, reverse=True)]
