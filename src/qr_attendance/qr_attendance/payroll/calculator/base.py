from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ...checkin.model import AttendanceRecord
from ...employees.model import Employee
from ..model import PayrollPeriod


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def gross_pay(self, employee: Employee) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def working_days(self, employee: Employee, period: PayrollPeriod) -> int:
        raise NotImplementedError

    @abstractmethod
    def daily_rate(self, employee: Employee, period: PayrollPeriod) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def worked_minutes(self, record: AttendanceRecord) -> int:
        raise NotImplementedError
