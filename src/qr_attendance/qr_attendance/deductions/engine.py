"""Lateness and deduction calculations.

Everything here is a pure function of its arguments. The monthly grace budget
is threaded through calls by the caller instead of being kept in state.

Rule selection: among rules whose threshold does not exceed the effective
delay, the greatest threshold wins; when two rules share that threshold the
one configured later wins. No qualifying rule means no deduction, even when
the effective delay is positive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import ensure_aware
from ..core.enums import DeductionUnit, GracePeriodScope, RuleScope
from ..core.exceptions import ValidationError
from ..policy.model import AttendancePolicy, DeductionRule

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DailyDeduction:
    delay_minutes: int
    effective_delay_minutes: int
    amount: Decimal
    rule: Optional[DeductionRule]
    remaining_grace_minutes: Optional[int] = None


@dataclass(frozen=True)
class PeriodDeduction:
    days: tuple[DailyDeduction, ...]
    total_delay_minutes: int
    total_effective_delay_minutes: int
    daily_amount: Decimal
    monthly_rule: Optional[DeductionRule]
    monthly_amount: Decimal
    remaining_grace_minutes: Optional[int]

    @property
    def total_amount(self) -> Decimal:
        return self.daily_amount + self.monthly_amount

    @property
    def late_days(self) -> int:
        return sum(1 for d in self.days if d.delay_minutes > 0)


def delay_minutes(scheduled_start: datetime, check_in_time: datetime) -> int:
    """Whole minutes between the scheduled start and the check-in, never negative."""
    seconds = (ensure_aware(check_in_time) - ensure_aware(scheduled_start)).total_seconds()
    return max(0, int(seconds // 60))


def select_rule(rules: Iterable[DeductionRule], effective_delay: int) -> Optional[DeductionRule]:
    chosen: Optional[DeductionRule] = None
    for rule in rules:
        if rule.threshold_minutes > effective_delay:
            continue
        # >= so a later rule with the same threshold replaces an earlier one
        if chosen is None or rule.threshold_minutes >= chosen.threshold_minutes:
            chosen = rule
    return chosen


def rule_amount(rule: DeductionRule, *, daily_rate: Decimal, working_minutes_per_day: int) -> Decimal:
    value = Decimal(str(rule.value))
    if rule.unit == DeductionUnit.AMOUNT:
        return to_money(value)

    if working_minutes_per_day <= 0:
        raise ValidationError("Working day length must be positive")

    minutes = value if rule.unit == DeductionUnit.MINUTES else value * 60
    return to_money(minutes / Decimal(working_minutes_per_day) * Decimal(daily_rate))


def compute_daily_deduction(
    scheduled_start: datetime,
    check_in_time: datetime,
    policy: AttendancePolicy,
    *,
    daily_rate: Decimal,
    working_minutes_per_day: Optional[int] = None,
    remaining_grace_minutes: Optional[int] = None,
) -> DailyDeduction:
    """Lateness and deduction for one working day.

    With a monthly grace scope, ``remaining_grace_minutes`` is the budget left
    in the period (``None`` means the full grace period) and the result
    carries the updated budget. Only daily-scoped rules apply here.
    """

    wmpd = working_minutes_per_day or policy.working_minutes_per_day
    delay = delay_minutes(scheduled_start, check_in_time)

    if policy.grace_period_scope == GracePeriodScope.MONTHLY:
        budget = policy.grace_period_minutes if remaining_grace_minutes is None else max(0, remaining_grace_minutes)
        absorbed = min(budget, delay)
        effective = delay - absorbed
        remaining = budget - absorbed
    else:
        effective = max(0, delay - policy.grace_period_minutes)
        remaining = remaining_grace_minutes

    rule = select_rule(policy.rules_for(RuleScope.DAILY), effective)
    amount = rule_amount(rule, daily_rate=daily_rate, working_minutes_per_day=wmpd) if rule else ZERO

    return DailyDeduction(
        delay_minutes=delay,
        effective_delay_minutes=effective,
        amount=amount,
        rule=rule,
        remaining_grace_minutes=remaining,
    )


def compute_period_deduction(
    entries: Sequence[tuple[datetime, datetime]],
    policy: AttendancePolicy,
    *,
    daily_rate: Decimal,
    working_minutes_per_day: Optional[int] = None,
) -> PeriodDeduction:
    """Sum daily deductions over ``(scheduled_start, check_in_time)`` pairs.

    Days are evaluated in chronological order so the monthly grace budget is
    consumed by the earliest lateness first. Monthly-scoped rules are then
    evaluated once against the total effective lateness of the period.
    """

    wmpd = working_minutes_per_day or policy.working_minutes_per_day
    remaining: Optional[int] = None
    days: list[DailyDeduction] = []

    for scheduled_start, check_in_time in sorted(entries, key=lambda e: ensure_aware(e[1])):
        day = compute_daily_deduction(
            scheduled_start,
            check_in_time,
            policy,
            daily_rate=daily_rate,
            working_minutes_per_day=wmpd,
            remaining_grace_minutes=remaining,
        )
        remaining = day.remaining_grace_minutes
        days.append(day)

    total_effective = sum(d.effective_delay_minutes for d in days)
    monthly_rule = select_rule(policy.rules_for(RuleScope.MONTHLY), total_effective)
    monthly_amount = (
        rule_amount(monthly_rule, daily_rate=daily_rate, working_minutes_per_day=wmpd) if monthly_rule else ZERO
    )

    if remaining is None and policy.grace_period_scope == GracePeriodScope.MONTHLY:
        remaining = policy.grace_period_minutes

    return PeriodDeduction(
        days=tuple(days),
        total_delay_minutes=sum(d.delay_minutes for d in days),
        total_effective_delay_minutes=total_effective,
        daily_amount=sum((d.amount for d in days), ZERO),
        monthly_rule=monthly_rule,
        monthly_amount=monthly_amount,
        remaining_grace_minutes=remaining,
    )
