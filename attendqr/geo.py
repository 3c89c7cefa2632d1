from haversine import Unit, haversine

from attendqr.config import GEOFENCE_RADIUS_METERS

EARTH_RADIUS_METERS = 6_371_000


def distance_meters(a, b):
    """Great-circle distance in meters between two (lat, lng) pairs."""
    # Unit.RADIANS gives the central angle, so the sphere radius is ours to choose
    return haversine(a, b, unit=Unit.RADIANS) * EARTH_RADIUS_METERS


def within_geofence(distance, radius=GEOFENCE_RADIUS_METERS):
    return distance <= radius
