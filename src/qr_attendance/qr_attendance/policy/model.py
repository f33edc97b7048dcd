from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any, Mapping

from ..common.datetime_utils import format_hhmm, minutes_between, parse_hhmm, resolve_timezone
from ..common.validators import require_int, require_number
from ..core import constants
from ..core.enums import AbsenceHandling, DeductionUnit, GracePeriodScope, RuleScope
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class DeductionRule:
    """One lateness rule: once effective delay reaches ``threshold_minutes``, deduct ``value`` of ``unit``."""

    threshold_minutes: int
    unit: DeductionUnit
    value: float
    scope: RuleScope = RuleScope.DAILY


@dataclass(frozen=True)
class AttendancePolicy:
    """Snapshot of the company attendance settings.

    Read-only to check-in and payroll code; a new instance replaces the old
    one when an administrator saves the settings.
    """

    company_start_time: time
    company_end_time: time
    grace_period_minutes: int
    grace_period_scope: GracePeriodScope
    deduction_rules: tuple[DeductionRule, ...]
    geofence_enabled: bool
    site_latitude: float
    site_longitude: float
    allowed_radius_meters: float
    qr_lifespan_seconds: int
    timezone: str = constants.DEFAULT_TIMEZONE
    absence_handling: AbsenceHandling = AbsenceHandling.FLAG

    @property
    def working_minutes_per_day(self) -> int:
        return minutes_between(self.company_start_time, self.company_end_time)

    @property
    def tz(self):
        return resolve_timezone(self.timezone)

    def rules_for(self, scope: RuleScope) -> tuple[DeductionRule, ...]:
        return tuple(r for r in self.deduction_rules if r.scope == scope)


def _rule_from_dict(raw: Mapping[str, Any], index: int) -> DeductionRule:
    where = f"deductionRules[{index}]"
    try:
        unit = DeductionUnit(raw.get("deductionType", raw.get("unit")))
        scope = RuleScope(raw.get("period", raw.get("scope", RuleScope.DAILY.value)))
    except ValueError as e:
        raise ValidationError(f"{where}: {e}")

    return DeductionRule(
        threshold_minutes=require_int(raw.get("delayMinutes", raw.get("thresholdMinutes")), f"{where}.delayMinutes", minimum=1),
        unit=unit,
        value=require_number(raw.get("deductionValue", raw.get("value")), f"{where}.deductionValue", minimum=1),
        scope=scope,
    )


def policy_from_dict(raw: Mapping[str, Any]) -> AttendancePolicy:
    """Build a policy from the camelCase settings document.

    Enforces the same schema the settings screen validates: HH:MM times,
    non-negative grace, positive rule thresholds/values, coordinate ranges and
    the radius / QR lifespan floors.
    """

    if not isinstance(raw, Mapping):
        raise ValidationError("Settings must be an object")

    start = parse_hhmm(str(raw.get("companyStartTime", "")), "companyStartTime")
    end = parse_hhmm(str(raw.get("companyEndTime", "")), "companyEndTime")
    if minutes_between(start, end) <= 0:
        raise ValidationError("companyEndTime must be after companyStartTime")

    try:
        grace_scope = GracePeriodScope(raw.get("gracePeriodType", GracePeriodScope.DAILY.value))
        absence = AbsenceHandling(raw.get("absenceHandling", AbsenceHandling.FLAG.value))
    except ValueError as e:
        raise ValidationError(str(e))

    rules_raw = raw.get("deductionRules") or []
    if not isinstance(rules_raw, list):
        raise ValidationError("deductionRules must be a list")

    geofence_enabled = raw.get("geofenceEnabled", True)
    if not isinstance(geofence_enabled, bool):
        raise ValidationError("geofenceEnabled must be true or false")

    tz_name = str(raw.get("timezone") or constants.DEFAULT_TIMEZONE)
    resolve_timezone(tz_name)

    return AttendancePolicy(
        company_start_time=start,
        company_end_time=end,
        grace_period_minutes=require_int(raw.get("gracePeriod", 0), "gracePeriod", minimum=0),
        grace_period_scope=grace_scope,
        deduction_rules=tuple(_rule_from_dict(r, i) for i, r in enumerate(rules_raw)),
        geofence_enabled=geofence_enabled,
        site_latitude=require_number(raw.get("companyLatitude"), "companyLatitude", minimum=-90, maximum=90),
        site_longitude=require_number(raw.get("companyLongitude"), "companyLongitude", minimum=-180, maximum=180),
        allowed_radius_meters=require_number(
            raw.get("allowedRadiusMeters"), "allowedRadiusMeters", minimum=constants.MIN_ALLOWED_RADIUS_METERS
        ),
        qr_lifespan_seconds=require_int(
            raw.get("qrCodeLifespan"), "qrCodeLifespan", minimum=constants.MIN_QR_LIFESPAN_SECONDS
        ),
        timezone=tz_name,
        absence_handling=absence,
    )


def policy_to_dict(policy: AttendancePolicy) -> dict[str, Any]:
    return {
        "companyStartTime": format_hhmm(policy.company_start_time),
        "companyEndTime": format_hhmm(policy.company_end_time),
        "gracePeriod": policy.grace_period_minutes,
        "gracePeriodType": policy.grace_period_scope.value,
        "deductionRules": [
            {
                "delayMinutes": r.threshold_minutes,
                "deductionType": r.unit.value,
                "deductionValue": r.value,
                "period": r.scope.value,
            }
            for r in policy.deduction_rules
        ],
        "geofenceEnabled": policy.geofence_enabled,
        "companyLatitude": policy.site_latitude,
        "companyLongitude": policy.site_longitude,
        "allowedRadiusMeters": policy.allowed_radius_meters,
        "qrCodeLifespan": policy.qr_lifespan_seconds,
        "timezone": policy.timezone,
        "absenceHandling": policy.absence_handling.value,
    }


def default_policy() -> AttendancePolicy:
    """Factory defaults used when seeding a fresh database."""

    return policy_from_dict(
        {
            "companyStartTime": constants.DEFAULT_COMPANY_START,
            "companyEndTime": constants.DEFAULT_COMPANY_END,
            "gracePeriod": constants.DEFAULT_GRACE_PERIOD_MINUTES,
            "gracePeriodType": GracePeriodScope.DAILY.value,
            "deductionRules": [
                {"delayMinutes": 15, "deductionType": "minutes", "deductionValue": 30, "period": "daily"},
                {"delayMinutes": 30, "deductionType": "hours", "deductionValue": 1, "period": "daily"},
            ],
            "geofenceEnabled": True,
            "companyLatitude": constants.DEFAULT_SITE_LATITUDE,
            "companyLongitude": constants.DEFAULT_SITE_LONGITUDE,
            "allowedRadiusMeters": constants.DEFAULT_ALLOWED_RADIUS_METERS,
            "qrCodeLifespan": constants.DEFAULT_QR_LIFESPAN_SECONDS,
        }
    )
