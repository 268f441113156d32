"""Tests for the Web Mercator transform and tile addressing."""

import math
import random

import pytest

from domain.errors import ProjectionSingularityError
from domain.models import GeoPoint, TileAddress
from geo.mercator import (
    ORIGIN_SHIFT_M,
    global_pixel,
    haversine_km,
    locate,
    model_to_geographic,
    pixel_to_geographic,
    pixel_within_tile,
    resolution,
    tile_address_for,
    tile_bounds,
    to_geographic,
    to_projected,
)


class TestProjection:
    """Tests for to_projected / to_geographic."""

    def test_origin(self):
        p = to_projected(0.0, 0.0)
        assert p.x == 0.0
        assert abs(p.y) < 1e-9

    def test_antimeridian_is_origin_shift(self):
        assert to_projected(180.0, 0.0).x == pytest.approx(ORIGIN_SHIFT_M)
        assert to_projected(-180.0, 0.0).x == pytest.approx(-ORIGIN_SHIFT_M)

    def test_round_trip_random_points(self):
        rng = random.Random(42)
        for _ in range(1000):
            lon = rng.uniform(-180.0, 180.0)
            lat = rng.uniform(-85.0, 85.0)
            p = to_projected(lon, lat)
            lon2, lat2 = to_geographic(p.x, p.y)
            assert abs(lon2 - lon) < 1e-9
            assert abs(lat2 - lat) < 1e-9

    def test_y_grows_northwards(self):
        assert to_projected(0.0, 10.0).y < to_projected(0.0, 20.0).y
        assert to_projected(0.0, -10.0).y < 0

    @pytest.mark.parametrize('lat', [90.0, -90.0, 91.0, -120.0])
    def test_singular_latitude_raises(self, lat):
        with pytest.raises(ProjectionSingularityError):
            to_projected(0.0, lat)

    @pytest.mark.parametrize('lon,lat', [(math.nan, 0.0), (0.0, math.inf), (math.inf, 10.0)])
    def test_non_finite_raises(self, lon, lat):
        with pytest.raises(ProjectionSingularityError):
            to_projected(lon, lat)

    def test_singularity_error_is_value_error(self):
        with pytest.raises(ValueError):
            to_projected(0.0, 90.0)

    def test_no_clamping_near_pole(self):
        # 89.9 is projectable: y is well beyond the square world extent
        assert to_projected(0.0, 89.9).y > ORIGIN_SHIFT_M


class TestTileGrid:
    """Tests for resolution, global pixels and tile addressing."""

    def test_resolution_zoom_zero(self):
        assert resolution(0, 256) == pytest.approx(156543.03392804097)

    def test_resolution_halves_per_zoom(self):
        assert resolution(8, 256) == pytest.approx(resolution(7, 256) / 2)

    def test_global_pixel_origin(self):
        gx, gy = global_pixel(to_projected(0.0, 0.0), 1, 256)
        assert gx == pytest.approx(256.0)
        assert gy == pytest.approx(256.0)

    def test_tile_and_pixel_agree_with_locate(self):
        rng = random.Random(7)
        for _ in range(200):
            lon = rng.uniform(-180.0, 180.0)
            lat = rng.uniform(-85.0, 85.0)
            p = to_projected(lon, lat)
            address, px, py = locate(lon, lat, 7, 256)
            assert tile_address_for(p, 7, 256) == address
            assert pixel_within_tile(p, 7, 256) == (px, py)
            assert 0 <= px < 256
            assert 0 <= py < 256

    def test_tile_x_monotonic_in_longitude(self):
        lons = [-180.0 + i * 0.37 for i in range(973)]
        xs = [locate(lon, 30.0, 6, 256)[0].x for lon in lons]
        assert xs == sorted(xs)

    def test_tile_y_monotonic_in_latitude(self):
        lats = [-85.0 + i * 0.17 for i in range(1000)]
        ys = [locate(20.0, lat, 6, 256)[0].y for lat in lats]
        assert ys == sorted(ys, reverse=True)

    def test_tile_index_doubles_per_zoom(self):
        rng = random.Random(11)
        for _ in range(500):
            lon = rng.uniform(-180.0, 180.0)
            lat = rng.uniform(-85.0, 85.0)
            for zoom in range(15):
                parent = locate(lon, lat, zoom, 256)[0]
                child = locate(lon, lat, zoom + 1, 256)[0]
                assert child.x in (2 * parent.x, 2 * parent.x + 1)
                assert child.y in (2 * parent.y, 2 * parent.y + 1)

    def test_antimeridian_wraps_to_first_column(self):
        east, _, _ = locate(180.0, 0.0, 7, 256)
        west, _, _ = locate(-180.0, 0.0, 7, 256)
        assert east.x == west.x == 0

    def test_y_clamped_near_poles(self):
        north, _, py_n = locate(0.0, 89.9, 3, 256)
        south, _, py_s = locate(0.0, -89.9, 3, 256)
        assert north.y == 0
        assert py_n == 0
        assert south.y == 2**3 - 1
        assert py_s == 255

    def test_pixel_to_geographic_is_inverse_of_locate(self):
        address = TileAddress(zoom=7, x=68, y=45)
        for px, py in [(0, 0), (10, 10), (128, 200), (255, 255)]:
            lon, lat = pixel_to_geographic(address, px, py, 256)
            assert locate(lon, lat, 7, 256) == (address, px, py)

    def test_tile_bounds(self):
        b = tile_bounds(TileAddress(zoom=1, x=0, y=0), 256)
        assert b.min_lon == pytest.approx(-180.0)
        assert b.max_lon == pytest.approx(0.0, abs=1e-9)
        assert b.min_lat == pytest.approx(0.0, abs=1e-9)
        assert b.max_lat == pytest.approx(85.0511287798, abs=1e-9)


class TestModelSpaceAndDistance:
    """Tests for model_to_geographic and haversine_km."""

    def test_model_corners(self):
        assert model_to_geographic(50.0, 50.0, 100.0) == (180.0, 85.0)
        assert model_to_geographic(0.0, 0.0, 100.0) == (0.0, 0.0)

    def test_model_scaling(self):
        lon, lat = model_to_geographic(-25.0, 10.0, 100.0)
        assert lon == pytest.approx(-90.0)
        assert lat == pytest.approx(17.0)

    def test_haversine_one_degree_on_equator(self):
        d = haversine_km(GeoPoint(0.0, 0.0), GeoPoint(1.0, 0.0))
        assert d == pytest.approx(111.195, abs=1e-3)

    def test_haversine_zero_and_symmetric(self):
        a = GeoPoint(7.6, 45.9)
        b = GeoPoint(8.1, 46.3)
        assert haversine_km(a, a) == 0.0
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))
