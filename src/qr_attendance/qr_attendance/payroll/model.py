from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, Mapping

from ..common.datetime_utils import ensure_aware, iter_days
from ..core.exceptions import ValidationError

_LABEL_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class PayrollPeriod:
    """A calendar month of attendance, labelled ``YYYY-MM``."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= int(self.month) <= 12:
            raise ValidationError("month must be between 1 and 12")
        if int(self.year) < 1970:
            raise ValidationError("year must be 1970 or later")

    @classmethod
    def parse(cls, label: str) -> "PayrollPeriod":
        m = _LABEL_RE.match((label or "").strip())
        if not m:
            raise ValidationError("period must look like YYYY-MM")
        return cls(int(m.group(1)), int(m.group(2)))

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def days(self) -> Iterator[date]:
        return iter_days(self.start, self.end)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class ExtraPay:
    """Overtime and bonus entered by an administrator for one employee."""

    overtime: Decimal = Decimal("0")
    bonus: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return Decimal(self.overtime) + Decimal(self.bonus)


@dataclass(frozen=True)
class PayrollRecord:
    employee_id: int
    employee_name: str
    period: str
    gross_pay: Decimal
    deductions: Decimal
    overtime: Decimal
    net_pay: Decimal
    delay_minutes: int = 0
    late_days: int = 0
    absent_days: int = 0
    flags: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "period": self.period,
            "gross_pay": str(self.gross_pay),
            "deductions": str(self.deductions),
            "overtime": str(self.overtime),
            "net_pay": str(self.net_pay),
            "delay_minutes": self.delay_minutes,
            "late_days": self.late_days,
            "absent_days": self.absent_days,
            "flags": list(self.flags),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PayrollRecord":
        return cls(
            employee_id=int(raw["employee_id"]),
            employee_name=str(raw["employee_name"]),
            period=str(raw["period"]),
            gross_pay=Decimal(str(raw["gross_pay"])),
            deductions=Decimal(str(raw["deductions"])),
            overtime=Decimal(str(raw["overtime"])),
            net_pay=Decimal(str(raw["net_pay"])),
            delay_minutes=int(raw.get("delay_minutes", 0)),
            late_days=int(raw.get("late_days", 0)),
            absent_days=int(raw.get("absent_days", 0)),
            flags=tuple(raw.get("flags") or ()),
        )


@dataclass(frozen=True)
class PayrollHistory:
    """Frozen snapshot of a disbursed period. Created once, never updated."""

    period: PayrollPeriod
    generated_at: datetime
    total_net_pay: Decimal
    records: tuple[PayrollRecord, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.label,
            "generated_at": ensure_aware(self.generated_at).isoformat(),
            "total_net_pay": str(self.total_net_pay),
            "records": [r.to_dict() for r in self.records],
        }
