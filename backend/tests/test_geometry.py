import math

import pytest

from chase.models import Coordinate
from chase.services.games.geometry import (
    EARTH_RADIUS_M, distance_between, haversine_distance, in_circle, offset_point,
)

ONE_DEGREE_M = EARTH_RADIUS_M * math.pi / 180


def test_distance_to_self_is_zero():
    assert haversine_distance(40.7128, -74.006, 40.7128, -74.006) == 0


def test_distance_is_symmetric():
    a = (48.8566, 2.3522)
    b = (51.5074, -0.1278)
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a))


def test_one_degree_along_meridian_and_equator():
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(ONE_DEGREE_M, rel=1e-9)
    assert haversine_distance(0, 0, 0, 1) == pytest.approx(ONE_DEGREE_M, rel=1e-9)


def test_paris_to_london_reference():
    # ~343.5 km on a 6371 km sphere
    assert haversine_distance(48.8566, 2.3522, 51.5074, -0.1278) == pytest.approx(343_500, abs=1_000)


def test_in_circle_includes_boundary():
    center = Coordinate(0.0, 0.0)
    edge = Coordinate(1.0, 0.0)
    assert in_circle(edge, center, ONE_DEGREE_M + 1e-6)
    assert not in_circle(edge, center, ONE_DEGREE_M - 1)


def test_offset_point_moves_roughly_the_requested_distance():
    lat, lon = offset_point(40.0, -74.0, 30.0, 40.0)
    moved = distance_between(Coordinate(40.0, -74.0), Coordinate(lat, lon))
    assert moved == pytest.approx(50.0, rel=0.01)
