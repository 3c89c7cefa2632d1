import math

from attendqr.geo import EARTH_RADIUS_METERS, distance_meters, within_geofence


def _north_of_origin(meters):
    return (math.degrees(meters / EARTH_RADIUS_METERS), 0.0)


def test_distance_to_same_point_is_zero():
    assert distance_meters((6.5244, 3.3792), (6.5244, 3.3792)) == 0


def test_distance_is_symmetric():
    a, b = (6.5244, 3.3792), (6.5250, 3.3801)
    assert math.isclose(distance_meters(a, b), distance_meters(b, a))


def test_distance_uses_mean_earth_radius():
    assert math.isclose(distance_meters((0, 0), _north_of_origin(120)), 120, rel_tol=1e-9)


def test_geofence_accepts_49m_and_rejects_51m():
    assert within_geofence(distance_meters((0, 0), _north_of_origin(49)))
    assert not within_geofence(distance_meters((0, 0), _north_of_origin(51)))


def test_geofence_boundary_is_inclusive():
    assert within_geofence(50.0)
    assert not within_geofence(50.01)
    assert within_geofence(99.0, radius=100)
