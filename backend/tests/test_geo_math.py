"""Tests for Haversine distance and bearing."""

import math

import pytest

from live_tracker.core.geo_math import distance_meters, initial_bearing, is_valid_coordinate


def test_identical_points_are_zero_apart():
    assert distance_meters(12.9, 80.0, 12.9, 80.0) == 0.0


def test_distance_is_symmetric():
    a = (12.9716, 77.5946)
    b = (13.0827, 80.2707)
    assert distance_meters(*a, *b) == pytest.approx(distance_meters(*b, *a))


def test_one_degree_of_latitude():
    # R * pi / 180
    assert distance_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.93, rel=1e-6)


def test_short_distance_along_meridian():
    # 0.004° of latitude ≈ 445 m
    d = distance_meters(12.900, 80.0, 12.904, 80.0)
    assert 440 < d < 450


@pytest.mark.parametrize("coords", [
    (None, 80.0, 12.9, 80.0),
    (12.9, math.nan, 12.9, 80.0),
    (12.9, 80.0, math.inf, 80.0),
    (12.9, 80.0, 12.9, "80.0"),
])
def test_invalid_coordinates_give_nan(coords):
    assert math.isnan(distance_meters(*coords))


def test_bearing_cardinal_directions():
    assert initial_bearing(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0)
    assert initial_bearing(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0)
    assert initial_bearing(1.0, 0.0, 0.0, 0.0) == pytest.approx(180.0)
    assert initial_bearing(0.0, 1.0, 0.0, 0.0) == pytest.approx(270.0)


def test_bearing_invalid_is_nan():
    assert math.isnan(initial_bearing(None, 0.0, 1.0, 0.0))


def test_is_valid_coordinate():
    assert is_valid_coordinate(12.5)
    assert is_valid_coordinate(0)
    assert not is_valid_coordinate(True)
    assert not is_valid_coordinate(None)
    assert not is_valid_coordinate(math.nan)
