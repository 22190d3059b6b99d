import math

import pytest

from travelmap.core.geo import GeoPoint, curve_points, haversine_km, path_length_km, route_curves


def test_haversine_quarter_great_circle():
    # (0,0) -> (0,90) is a quarter of the equator: R * pi / 2 with R = 6371 km.
    assert haversine_km(0, 0, 0, 90) == pytest.approx(10007.5, abs=0.1)


@pytest.mark.parametrize(
    "a, b",
    [
        ((35.68, 139.69), (48.85, 2.35)),
        ((-33.87, 151.21), (40.71, -74.0)),
        ((89.9, 0.0), (-89.9, 179.9)),
        ((0.0, 179.5), (0.0, -179.5)),
    ],
)
def test_haversine_is_symmetric(a, b):
    assert haversine_km(*a, *b) == pytest.approx(haversine_km(*b, *a))


def test_haversine_identical_points_is_zero():
    assert haversine_km(12.34, -56.78, 12.34, -56.78) == 0


def test_haversine_across_antimeridian_is_short():
    assert haversine_km(0.0, 179.5, 0.0, -179.5) == pytest.approx(111.19, abs=0.1)


def test_curve_points_endpoints_and_midpoint_bulge():
    start = GeoPoint(lat=35.68, lng=139.69)
    end = GeoPoint(lat=48.85, lng=2.35)
    pts = curve_points(start, end)

    assert len(pts) == 31
    assert pts[0] == pytest.approx((start.lat, start.lng))
    assert pts[-1] == pytest.approx((end.lat, end.lng))

    # Midpoint: linear interpolation plus the full offset (half-weighted on lng).
    bulge = haversine_km(start.lat, start.lng, end.lat, end.lng) / 2000
    mid_lat, mid_lng = pts[15]
    assert mid_lat == pytest.approx((start.lat + end.lat) / 2 + bulge)
    assert mid_lng == pytest.approx((start.lng + end.lng) / 2 + bulge * 0.5)


def test_curve_points_offset_is_single_humped():
    start = GeoPoint(lat=0.0, lng=0.0)
    end = GeoPoint(lat=0.0, lng=40.0)
    offsets = [lat for lat, _ in curve_points(start, end, steps=10)]

    peak = offsets.index(max(offsets))
    assert peak == 5
    assert all(a <= b for a, b in zip(offsets[:peak], offsets[1 : peak + 1]))
    assert all(a >= b for a, b in zip(offsets[peak:], offsets[peak + 1 :]))


def test_curve_points_for_identical_points_is_flat():
    p = GeoPoint(lat=10.0, lng=20.0)
    assert curve_points(p, p, steps=4) == [(10.0, 20.0)] * 5


def test_path_length_and_route_curves():
    pts = [GeoPoint(0, 0), GeoPoint(0, 90), GeoPoint(0, 180)]
    assert path_length_km(pts) == pytest.approx(math.pi * 6371, abs=0.1)
    assert path_length_km(pts[:1]) == 0
    assert path_length_km([]) == 0

    curves = route_curves(pts, steps=8)
    assert len(curves) == 2
    assert all(len(c) == 9 for c in curves)
