from dataclasses import replace
from datetime import timedelta

from src.qr_attendance.qr_attendance.checkin import token as token_codec
from src.qr_attendance.qr_attendance.checkin.model import AttendanceRecord, Coordinate
from src.qr_attendance.qr_attendance.checkin.state_machine import evaluate_scan
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus, RejectionReason, ScanResult
from tests.fakes import SITE_LAT, SITE_LNG, make_policy

AT_SITE = Coordinate(SITE_LAT, SITE_LNG)
FAR_AWAY = Coordinate(SITE_LAT + 0.02, SITE_LNG)


def _scan(policy, now, record=None, *, token=None, coordinate=AT_SITE, scheduled_start=None):
    return evaluate_scan(
        token if token is not None else token_codec.encode(now),
        coordinate,
        policy,
        record,
        now,
        employee_id=1,
        work_date=now.date(),
        scheduled_start=scheduled_start,
    )


def _checked_in(now, *, minutes_ago: int) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=1,
        work_date=now.date(),
        check_in_time=now - timedelta(minutes=minutes_ago),
        check_out_time=None,
        status=AttendanceStatus.PRESENT,
        check_in_location=AT_SITE,
        version=1,
    )


def test_first_scan_checks_in(policy, fixed_now):
    decision = _scan(policy, fixed_now)

    assert decision.outcome.result == ScanResult.CHECKED_IN
    assert decision.outcome.at == fixed_now
    assert decision.write.check_in_time == fixed_now
    assert decision.write.status == AttendanceStatus.PRESENT
    assert decision.write.check_in_location == AT_SITE
    assert decision.write.version == 1


def test_check_in_records_delay_against_schedule(policy, fixed_now):
    start = fixed_now - timedelta(minutes=25, seconds=30)
    decision = _scan(policy, fixed_now, scheduled_start=start)
    assert decision.write.delay_minutes == 25


def test_early_check_in_has_no_delay(policy, fixed_now):
    decision = _scan(policy, fixed_now, scheduled_start=fixed_now + timedelta(minutes=30))
    assert decision.write.delay_minutes == 0


def test_rescan_inside_lockout_window_is_already_registered(policy, fixed_now):
    record = _checked_in(fixed_now, minutes_ago=59)
    decision = _scan(policy, fixed_now, record)

    assert decision.outcome.result == ScanResult.ALREADY_REGISTERED
    assert decision.outcome.at == record.check_in_time
    assert decision.write is None


def test_scan_after_lockout_window_checks_out(policy, fixed_now):
    record = _checked_in(fixed_now, minutes_ago=60)
    decision = _scan(policy, fixed_now, record)

    assert decision.outcome.result == ScanResult.CHECKED_OUT
    assert decision.write.check_out_time == fixed_now
    assert decision.write.check_in_time == record.check_in_time
    assert decision.write.check_out_location == AT_SITE
    assert decision.write.version == 2


def test_completed_day_is_frozen(policy, fixed_now):
    record = replace(_checked_in(fixed_now, minutes_ago=480), check_out_time=fixed_now - timedelta(minutes=5))
    decision = _scan(policy, fixed_now, record)

    assert decision.outcome.result == ScanResult.DAY_ALREADY_COMPLETE
    assert decision.write is None


def test_marked_absent_day_counts_as_complete(policy, fixed_now):
    record = AttendanceRecord(
        employee_id=1,
        work_date=fixed_now.date(),
        check_in_time=None,
        check_out_time=None,
        status=AttendanceStatus.ABSENT,
        version=1,
    )
    assert _scan(policy, fixed_now, record).outcome.result == ScanResult.DAY_ALREADY_COMPLETE


def test_expired_token_is_rejected_without_write(policy, fixed_now):
    token = token_codec.encode(fixed_now - timedelta(seconds=16))
    decision = _scan(policy, fixed_now, token=token)

    assert decision.outcome.result == ScanResult.REJECTED
    assert decision.outcome.reason == RejectionReason.EXPIRED_TOKEN
    assert decision.write is None


def test_invalid_token_is_rejected(policy, fixed_now):
    decision = _scan(policy, fixed_now, token="bm90LWEtY29kZQ==")
    assert decision.outcome.reason == RejectionReason.INVALID_TOKEN


def test_token_checked_before_location(policy, fixed_now):
    decision = _scan(policy, fixed_now, token="garbage!", coordinate=None)
    assert decision.outcome.reason == RejectionReason.INVALID_TOKEN


def test_location_required_when_geofence_enabled(policy, fixed_now):
    decision = _scan(policy, fixed_now, coordinate=None)
    assert decision.outcome.reason == RejectionReason.LOCATION_REQUIRED
    assert decision.write is None


def test_outside_geofence_reports_distance(policy, fixed_now):
    decision = _scan(policy, fixed_now, coordinate=FAR_AWAY)

    assert decision.outcome.reason == RejectionReason.OUTSIDE_GEOFENCE
    assert decision.outcome.distance_meters > 2_000
    assert "200 meters" in decision.outcome.message


def test_geofence_disabled_accepts_missing_location(fixed_now):
    decision = _scan(make_policy(geofenceEnabled=False), fixed_now, coordinate=None)
    assert decision.outcome.result == ScanResult.CHECKED_IN
    assert decision.write.check_in_location is None


def test_rejection_on_checked_in_record_leaves_it_untouched(policy, fixed_now):
    record = _checked_in(fixed_now, minutes_ago=120)
    decision = _scan(policy, fixed_now, record, coordinate=FAR_AWAY)

    assert decision.outcome.rejected
    assert decision.write is None
