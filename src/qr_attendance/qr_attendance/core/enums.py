from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role carried by the resolved identity; drives authorization."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Permission(str, Enum):
    """Operations a role may perform."""

    SCAN = "scan"
    VIEW_OWN_ATTENDANCE = "view_own_attendance"
    VIEW_ATTENDANCE = "view_attendance"
    MARK_ATTENDANCE = "mark_attendance"
    MANAGE_EMPLOYEES = "manage_employees"
    MANAGE_POLICY = "manage_policy"
    ISSUE_QR = "issue_qr"
    RUN_PAYROLL = "run_payroll"
    DISBURSE_PAYROLL = "disburse_payroll"
    VIEW_PAYROLL_HISTORY = "view_payroll_history"


class AttendanceStatus(str, Enum):
    """Attendance status stored with each daily record."""

    PRESENT = "present"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"


class GracePeriodScope(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


class DeductionUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    AMOUNT = "amount"


class RuleScope(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


class AbsenceHandling(str, Enum):
    """What payroll does with a working day that has no check-in."""

    FLAG = "flag"
    DEDUCT_FULL_DAY = "deduct_full_day"


class ScanResult(str, Enum):
    """Outcome of evaluating one scan."""

    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    ALREADY_REGISTERED = "already_registered"
    DAY_ALREADY_COMPLETE = "day_already_complete"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    LOCATION_REQUIRED = "location_required"
    OUTSIDE_GEOFENCE = "outside_geofence"
    EMPLOYEE_NOT_FOUND = "employee_not_found"
