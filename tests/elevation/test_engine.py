"""Tests for ElevationQueryEngine point queries and height fields."""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from domain.errors import InvalidRequestError, TileFetchError
from domain.models import GeoPoint, RegionBounds, TerrainSettings, TileAddress
from elevation.engine import ElevationQueryEngine, HeightField
from elevation.slope import slope_at
from geo.mercator import pixel_to_geographic
from tiles.store import TileStore

TILE_RES = 16
ZOOM = 7
TARGET = TileAddress(zoom=ZOOM, x=68, y=45)
# (130, 0, 0) decodes to 512 m
HIGH = (130, 0, 0)


def _settings(**overrides):
    values = {'tile_res': TILE_RES, 'dem_zoom': ZOOM}
    values.update(overrides)
    return TerrainSettings(**values)


def _engine(fetch, **overrides):
    settings = _settings(**overrides)
    store = TileStore.from_settings(fetch, settings)
    return ElevationQueryEngine(store, settings)


@pytest.fixture
def scenario_fetch(make_tile):
    """Every tile is 512 m except pixel (px=10, py=10) of TARGET at 0 m."""
    target = make_tile(TILE_RES, fill=HIGH, pixels={(10, 10): (128, 0, 0)})
    other = make_tile(TILE_RES, fill=HIGH)

    async def _fetch(address):
        return target if address == TARGET else other

    return AsyncMock(side_effect=_fetch)


class TestElevationAt:
    """Point queries."""

    @pytest.mark.asyncio
    async def test_end_to_end_pixel(self, scenario_fetch):
        engine = _engine(scenario_fetch)
        lon, lat = pixel_to_geographic(TARGET, 10, 10, TILE_RES)
        assert await engine.elevation_at(lon, lat) == 0.0
        lon2, lat2 = pixel_to_geographic(TARGET, 11, 10, TILE_RES)
        assert await engine.elevation_at(lon2, lat2) == 512.0
        scenario_fetch.assert_awaited_once_with(TARGET)

    @pytest.mark.asyncio
    async def test_failed_tile_reads_zero(self):
        engine = _engine(AsyncMock(side_effect=TileFetchError(TARGET, 'HTTP 404')))
        lon, lat = pixel_to_geographic(TARGET, 3, 3, TILE_RES)
        assert await engine.elevation_at(lon, lat) == 0.0

    @pytest.mark.asyncio
    async def test_elevations_at_keeps_order_and_dedups(self, scenario_fetch):
        engine = _engine(scenario_fetch)
        zero = pixel_to_geographic(TARGET, 10, 10, TILE_RES)
        high = pixel_to_geographic(TARGET, 2, 2, TILE_RES)
        neighbour = pixel_to_geographic(TileAddress(zoom=ZOOM, x=69, y=45), 10, 10, TILE_RES)
        result = await engine.elevations_at([high, zero, GeoPoint(*neighbour), zero])
        assert result == [512.0, 0.0, 512.0, 0.0]
        assert scenario_fetch.await_count == 2

    def test_store_resolution_must_match(self):
        store = TileStore(AsyncMock(), tile_res=32)
        with pytest.raises(ValueError, match='does not match'):
            ElevationQueryEngine(store, _settings())


class TestBuildHeightField:
    """Region grids."""

    @pytest.mark.asyncio
    async def test_corner_sample_matches_scenario_pixel(self, scenario_fetch):
        engine = _engine(scenario_fetch)
        lon, lat = pixel_to_geographic(TARGET, 10, 10, TILE_RES)
        bounds = RegionBounds(min_lon=lon, max_lon=lon + 0.5, min_lat=lat - 0.5, max_lat=lat)

        field = await engine.build_height_field(bounds, grid_resolution=3)

        assert isinstance(field, HeightField)
        assert field.heights.shape == (3, 3)
        assert field.slopes.shape == (3, 3)
        assert field.heights.dtype == np.float32
        assert field.heights[0, 0] == 0.0
        assert field.heights[0, 1] == pytest.approx(512.0 * 3.0 / 1000.0)
        assert field.heights[1, 0] == pytest.approx(512.0 * 3.0 / 1000.0)
        assert field.tile_count == 1
        assert field.vertical_exaggeration == 3.0
        assert field.grid_resolution == 3

    @pytest.mark.asyncio
    async def test_exaggeration_override(self, scenario_fetch):
        engine = _engine(scenario_fetch)
        lon, lat = pixel_to_geographic(TARGET, 2, 2, TILE_RES)
        bounds = RegionBounds(min_lon=lon, max_lon=lon + 0.01, min_lat=lat - 0.01, max_lat=lat)
        field = await engine.build_height_field(bounds, grid_resolution=2, vertical_exaggeration=10)
        assert np.allclose(field.heights, 5.12)
        assert np.all(field.elevations_m == 512.0)

    @pytest.mark.asyncio
    async def test_cells_match_point_queries(self, ramp_tile):
        fetch = AsyncMock(return_value=ramp_tile(TILE_RES))
        engine = _engine(fetch)
        west, north = pixel_to_geographic(TARGET, 3, 5, TILE_RES)
        east, south = pixel_to_geographic(TileAddress(zoom=ZOOM, x=69, y=46), 9, 7, TILE_RES)
        bounds = RegionBounds(min_lon=west, max_lon=east, min_lat=south, max_lat=north)
        n = 9

        field = await engine.build_height_field(bounds, grid_resolution=n)

        assert field.tile_count == 4
        assert fetch.await_count == 4
        raster = await engine.store.get(TARGET)
        lon_step = (bounds.max_lon - bounds.min_lon) / (n - 1)
        lat_step = (bounds.max_lat - bounds.min_lat) / (n - 1)
        for row in range(n):
            lat = bounds.max_lat - row * lat_step
            for col in range(n):
                lon = bounds.min_lon + col * lon_step
                assert field.elevations_m[row, col] == await engine.elevation_at(lon, lat)
                _, px, py = engine.locate(lon, lat)
                assert field.slopes[row, col] == pytest.approx(slope_at(raster, py, px))
        assert np.allclose(field.heights, field.elevations_m * 3.0 / 1000.0)

    @pytest.mark.asyncio
    async def test_vertex_attributes_are_row_major(self, ramp_tile):
        engine = _engine(AsyncMock(return_value=ramp_tile(TILE_RES)))
        west, north = pixel_to_geographic(TARGET, 1, 1, TILE_RES)
        east, south = pixel_to_geographic(TARGET, 12, 12, TILE_RES)
        field = await engine.build_height_field(
            RegionBounds(min_lon=west, max_lon=east, min_lat=south, max_lat=north),
            grid_resolution=4,
        )
        heights, slopes = field.vertex_attributes()
        assert heights.shape == (16,)
        assert heights[5] == field.heights[1, 1]
        assert slopes[7] == field.slopes[1, 3]

    @pytest.mark.asyncio
    async def test_model_space_region(self, make_tile):
        engine = _engine(AsyncMock(return_value=make_tile(TILE_RES)))
        field = await engine.build_height_field(origin=(0.0, 0.0), extent=2.0, grid_resolution=2)
        assert field.bounds == RegionBounds.from_model_space(0.0, 0.0, 2.0, 100.0)
        assert field.bounds.max_lon == pytest.approx(3.6)
        assert field.bounds.max_lat == pytest.approx(1.7)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'kwargs',
        [
            {'grid_resolution': 1},
            {'grid_resolution': 0},
            {'grid_resolution': 2.5},
            {'vertical_exaggeration': float('nan')},
        ],
    )
    async def test_invalid_arguments_rejected_before_fetch(self, kwargs):
        fetch = AsyncMock()
        engine = _engine(fetch)
        bounds = RegionBounds(min_lon=7.0, max_lon=8.0, min_lat=45.0, max_lat=46.0)
        with pytest.raises(InvalidRequestError):
            await engine.build_height_field(bounds, **kwargs)
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ambiguous_region_rejected(self):
        engine = _engine(AsyncMock())
        bounds = RegionBounds(min_lon=7.0, max_lon=8.0, min_lat=45.0, max_lat=46.0)
        with pytest.raises(InvalidRequestError):
            await engine.build_height_field(bounds, origin=(0.0, 0.0), extent=1.0)
        with pytest.raises(InvalidRequestError):
            await engine.build_height_field()
        with pytest.raises(InvalidRequestError):
            await engine.build_height_field(origin=(0.0, 0.0))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'bounds',
        [
            RegionBounds(min_lon=7.0, max_lon=8.0, min_lat=80.0, max_lat=86.0),
            RegionBounds(min_lon=7.0, max_lon=8.0, min_lat=-89.0, max_lat=-80.0),
            RegionBounds(min_lon=179.0, max_lon=181.0, min_lat=45.0, max_lat=46.0),
            RegionBounds(min_lon=-200.0, max_lon=-170.0, min_lat=45.0, max_lat=46.0),
        ],
    )
    async def test_region_outside_mercator_square_rejected(self, bounds):
        fetch = AsyncMock()
        engine = _engine(fetch)
        with pytest.raises(InvalidRequestError, match='outside'):
            await engine.build_height_field(bounds, grid_resolution=4)
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_model_space_region_past_latitude_limit_rejected(self):
        fetch = AsyncMock()
        engine = _engine(fetch)
        # mz = 60 maps to 102 degrees north with model_size 100
        with pytest.raises(InvalidRequestError, match='latitude'):
            await engine.build_height_field(origin=(0.0, 50.0), extent=20.0, grid_resolution=4)
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_region_on_mercator_edges_accepted(self, make_tile):
        engine = _engine(AsyncMock(return_value=make_tile(TILE_RES)))
        bounds = RegionBounds(min_lon=-180.0, max_lon=180.0, min_lat=-85.05, max_lat=85.05)
        field = await engine.build_height_field(bounds, grid_resolution=2)
        assert field.heights.shape == (2, 2)

    @pytest.mark.asyncio
    async def test_default_resolution_is_tile_res(self, make_tile):
        engine = _engine(AsyncMock(return_value=make_tile(TILE_RES)))
        bounds = RegionBounds(min_lon=7.0, max_lon=7.1, min_lat=45.0, max_lat=45.1)
        field = await engine.build_height_field(bounds)
        assert field.heights.shape == (TILE_RES, TILE_RES)


class TestDefaultTileResolution:
    """The same scenario on full-size 256 px tiles with default settings."""

    @pytest.fixture
    def fetch_256(self, make_tile):
        target = make_tile(256, fill=HIGH, pixels={(10, 10): (128, 0, 0)})
        other = make_tile(256, fill=HIGH)

        async def _fetch(address):
            return target if address == TARGET else other

        return AsyncMock(side_effect=_fetch)

    @staticmethod
    def _default_engine(fetch):
        settings = TerrainSettings()
        return ElevationQueryEngine(TileStore.from_settings(fetch, settings), settings)

    @pytest.mark.asyncio
    async def test_point_query(self, fetch_256):
        engine = self._default_engine(fetch_256)
        assert engine.settings.tile_res == 256
        assert engine.settings.dem_zoom == ZOOM
        lon, lat = pixel_to_geographic(TARGET, 10, 10, 256)
        assert await engine.elevation_at(lon, lat) == 0.0
        lon2, lat2 = pixel_to_geographic(TARGET, 11, 10, 256)
        assert await engine.elevation_at(lon2, lat2) == 512.0
        fetch_256.assert_awaited_once_with(TARGET)

    @pytest.mark.asyncio
    async def test_height_field_corner(self, fetch_256):
        engine = self._default_engine(fetch_256)
        lon, lat = pixel_to_geographic(TARGET, 10, 10, 256)
        # 0.05 degrees stays inside TARGET at zoom 7
        bounds = RegionBounds(min_lon=lon, max_lon=lon + 0.05, min_lat=lat - 0.05, max_lat=lat)

        field = await engine.build_height_field(bounds, grid_resolution=2)

        assert field.tile_count == 1
        assert field.heights[0, 0] == 0.0
        assert field.heights[0, 1] == pytest.approx(1.536)
        assert field.heights[1, 0] == pytest.approx(1.536)
