import pytest

from src.qr_attendance.qr_attendance.checkin import geofence
from src.qr_attendance.qr_attendance.checkin.model import Coordinate

SITE = Coordinate(30.0444, 31.2357)


def test_same_point_is_zero_distance():
    assert geofence.haversine_distance(SITE, SITE) == pytest.approx(0.0, abs=1e-6)


def test_one_degree_of_latitude_is_about_111_km():
    d = geofence.haversine_distance(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
    assert d == pytest.approx(111_195, rel=1e-3)


def test_distance_is_symmetric():
    other = Coordinate(30.05, 31.24)
    assert geofence.haversine_distance(SITE, other) == pytest.approx(geofence.haversine_distance(other, SITE))


def test_antipodal_points_do_not_blow_up():
    d = geofence.haversine_distance(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
    assert d == pytest.approx(3.14159265 * 6_371_000, rel=1e-6)


def test_boundary_is_inside():
    other = Coordinate(30.0454, 31.2357)
    distance = geofence.haversine_distance(other, SITE)
    assert isinstance(geofence.validate(other, SITE, distance), geofence.Within)
    assert isinstance(geofence.validate(other, SITE, distance - 0.01), geofence.Outside)


def test_far_point_is_outside_with_distance():
    result = geofence.validate(Coordinate(30.06, 31.2357), SITE, 200)
    assert isinstance(result, geofence.Outside)
    assert result.distance_meters > 1_700
