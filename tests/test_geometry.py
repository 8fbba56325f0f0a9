import math

import pytest

from travelmarks.geometry import (
    RouteEstimate,
    bounding_box,
    estimate_route,
    haversine_km,
    lerp,
)

from conftest import BERLIN, PARIS, TOKYO


def test_estimate_route_is_zero_for_fewer_than_two_points():
    assert estimate_route([]) == RouteEstimate(0.0, 0.0)
    assert estimate_route([PARIS]) == RouteEstimate(0.0, 0.0)


def test_paris_to_tokyo_distance_and_eta():
    estimate = estimate_route([PARIS, TOKYO])
    assert estimate.distance_km == pytest.approx(9714, rel=0.01)
    assert estimate.eta_hours == pytest.approx(estimate.distance_km / 60.0)
    assert estimate.eta_hours == pytest.approx(161.9, rel=0.01)
    assert estimate.eta_minutes == pytest.approx(estimate.eta_hours * 60.0)


def test_estimate_sums_every_leg():
    points = [PARIS, BERLIN, TOKYO]
    estimate = estimate_route(points)
    expected = haversine_km(PARIS, BERLIN) + haversine_km(BERLIN, TOKYO)
    assert estimate.distance_km == pytest.approx(expected)
    assert estimate.eta_hours == pytest.approx(expected / 60.0)


def test_haversine_is_symmetric_and_zero_on_identity():
    assert haversine_km(PARIS, PARIS) == 0.0
    assert haversine_km(PARIS, BERLIN) == pytest.approx(haversine_km(BERLIN, PARIS))


def test_haversine_quarter_meridian():
    # Equator to pole along one meridian is a quarter of the circumference.
    assert haversine_km((0.0, 0.0), (0.0, 90.0)) == pytest.approx(math.pi * 6371.0 / 2.0)


def test_lerp_endpoints_and_midpoint():
    assert lerp(PARIS, BERLIN, 0.0) == PARIS
    assert lerp(PARIS, BERLIN, 1.0) == pytest.approx(BERLIN)
    mid = lerp((0.0, 0.0), (10.0, -20.0), 0.5)
    assert mid == pytest.approx((5.0, -10.0))


def test_bounding_box():
    assert bounding_box([PARIS, TOKYO, BERLIN]) == ((2.35, 35.68), (139.69, 52.52))
    with pytest.raises(ValueError):
        bounding_box([])
