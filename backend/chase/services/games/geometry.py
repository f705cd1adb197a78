"""Distance and containment math on a spherical earth."""
import math

EARTH_RADIUS_M = 6371000.0
# Flat-earth approximation used for offsets inside a small game area
METERS_PER_DEGREE_LAT = 111000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_between(a, b) -> float:
    """Distance between two objects exposing ``latitude``/``longitude``."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def in_circle(point, center, radius_meters: float) -> bool:
    return distance_between(point, center) <= radius_meters


def offset_point(latitude: float, longitude: float, north_m: float, east_m: float):
    """Shift a point by a metric offset. Only accurate over short distances."""
    d_lat = north_m / METERS_PER_DEGREE_LAT
    d_lon = east_m / (METERS_PER_DEGREE_LAT * math.cos(math.radians(latitude)))
    return latitude + d_lat, longitude + d_lon
