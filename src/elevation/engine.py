"""
Elevation Query Engine.

Answers point elevation queries and builds height/slope fields over a region by
combining the Mercator addressing, the Terrarium decoder and the tile store.
Lookups are nearest-sample: the raster value of the pixel containing the point
is returned as is, without bilinear interpolation.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from domain.errors import InvalidRequestError
from domain.models import GeoPoint, RegionBounds, TerrainSettings, TileAddress
from elevation.slope import slope_field
from geo.mercator import locate
from shared.constants import (
    LOG_MEMORY_EVERY_TILES,
    MERCATOR_LAT_LIMIT_DEG,
    METERS_PER_MODEL_UNIT,
    MIN_GRID_RESOLUTION,
    WORLD_LNG_HALF_SPAN_DEG,
)
from shared.diagnostics import log_memory_usage

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tiles.store import TileStore

logger = logging.getLogger(__name__)


@dataclass
class HeightField:
    """Height and slope grids aligned 1:1 with a consumer vertex grid.

    Row 0 is the northern edge (max_lat), column 0 the western edge (min_lon).
    """

    heights: np.ndarray
    slopes: np.ndarray
    elevations_m: np.ndarray
    bounds: RegionBounds
    vertical_exaggeration: float
    tile_count: int

    @property
    def grid_resolution(self) -> int:
        return int(self.heights.shape[0])

    def vertex_attributes(self) -> tuple[np.ndarray, np.ndarray]:
        """Row-major flattened (heights, slopes) for per-vertex attributes."""
        return self.heights.ravel(), self.slopes.ravel()


def _check_region_range(region: RegionBounds) -> None:
    """Region must lie inside the addressable Mercator square."""
    lng, lat = WORLD_LNG_HALF_SPAN_DEG, MERCATOR_LAT_LIMIT_DEG
    if region.min_lon < -lng or region.max_lon > lng:
        msg = f'Region longitude [{region.min_lon}, {region.max_lon}] outside [-{lng}, {lng}]'
        raise InvalidRequestError(msg)
    if region.min_lat < -lat or region.max_lat > lat:
        msg = f'Region latitude [{region.min_lat}, {region.max_lat}] outside [-{lat}, {lat}]'
        raise InvalidRequestError(msg)


class ElevationQueryEngine:
    """Point and region elevation queries over a TileStore.

    Usage:
        engine = ElevationQueryEngine(store, settings)
        h = await engine.elevation_at(10.5, 46.2)
        field = await engine.build_height_field(RegionBounds(...), grid_resolution=128)
    """

    def __init__(self, store: TileStore, settings: TerrainSettings | None = None) -> None:
        self.store = store
        self.settings = settings or TerrainSettings()
        if store.tile_res != self.settings.tile_res:
            msg = (
                f'Tile store resolution {store.tile_res} does not match '
                f'settings.tile_res {self.settings.tile_res}'
            )
            raise ValueError(msg)

    def locate(self, lon: float, lat: float) -> tuple[TileAddress, int, int]:
        """(tile address, px, py) of a point at the configured DEM zoom."""
        return locate(lon, lat, self.settings.dem_zoom, self.settings.tile_res)

    async def elevation_at(self, lon: float, lat: float) -> float:
        """Elevation in meters of the raster sample containing (lon, lat)."""
        address, px, py = self.locate(lon, lat)
        raster = await self.store.get(address)
        return float(raster[py, px])

    async def elevations_at(
        self,
        coords: Sequence[tuple[float, float] | GeoPoint],
    ) -> list[float]:
        """Batch elevation_at over (lon, lat) pairs or GeoPoints.

        Each distinct tile is requested once; the result order follows ``coords``.
        """
        located = [
            self.locate(c.lon, c.lat) if isinstance(c, GeoPoint) else self.locate(*c)
            for c in coords
        ]
        tiles = await self._fetch_tiles(address for address, _, _ in located)
        return [float(tiles[address][py, px]) for address, px, py in located]

    async def _fetch_tiles(
        self,
        addresses: Iterable[TileAddress],
    ) -> dict[TileAddress, np.ndarray]:
        # Тайлы, нужные запросу, загружаются параллельно по одному на адрес
        unique = list(dict.fromkeys(addresses))
        rasters = await asyncio.gather(*(self.store.get(a) for a in unique))
        return dict(zip(unique, rasters, strict=True))

    def _resolve_region(
        self,
        bounds: RegionBounds | None,
        origin: tuple[float, float] | None,
        extent: float | None,
    ) -> RegionBounds:
        if bounds is not None:
            if origin is not None or extent is not None:
                msg = 'Pass either bounds or origin+extent, not both'
                raise InvalidRequestError(msg)
            if not isinstance(bounds, RegionBounds):
                msg = f'bounds must be RegionBounds, got {type(bounds).__name__}'
                raise InvalidRequestError(msg)
            region = bounds
        else:
            if origin is None or extent is None:
                msg = 'A region needs bounds or both origin and extent'
                raise InvalidRequestError(msg)
            mx, mz = origin
            region = RegionBounds.from_model_space(mx, mz, extent, self.settings.model_size)
        _check_region_range(region)
        return region

    async def build_height_field(
        self,
        bounds: RegionBounds | None = None,
        *,
        origin: tuple[float, float] | None = None,
        extent: float | None = None,
        grid_resolution: int | None = None,
        vertical_exaggeration: float | None = None,
    ) -> HeightField:
        """
        Build a grid_resolution x grid_resolution height/slope field.

        Args:
            bounds: Geographic region; alternatively origin + extent in model space.
            origin: Model-space (x, z) centre of the region.
            extent: Model-space side length of the region.
            grid_resolution: Cells per side, defaults to settings.tile_res.
            vertical_exaggeration: Height multiplier, defaults to settings.

        Returns:
            HeightField with heights = meters * exaggeration / 1000 and the
            central-difference slope of the sampled raster pixel.
        """
        region = self._resolve_region(bounds, origin, extent)
        n = self.settings.tile_res if grid_resolution is None else grid_resolution
        if int(n) != n or n < MIN_GRID_RESOLUTION:
            msg = f'grid_resolution must be an integer >= {MIN_GRID_RESOLUTION}, got {n}'
            raise InvalidRequestError(msg)
        n = int(n)
        exaggeration = (
            self.settings.vertical_exaggeration
            if vertical_exaggeration is None
            else float(vertical_exaggeration)
        )
        if not math.isfinite(exaggeration):
            msg = f'vertical_exaggeration must be finite, got {exaggeration}'
            raise InvalidRequestError(msg)

        lon_step = (region.max_lon - region.min_lon) / (n - 1)
        lat_step = (region.max_lat - region.min_lat) / (n - 1)
        lons = [region.min_lon + col * lon_step for col in range(n)]
        lats = [region.max_lat - row * lat_step for row in range(n)]

        # Проекция разделима: столбец сетки зависит только от долготы,
        # строка только от широты. Адресуем оси один раз, результат тот же,
        # что у locate() для каждой ячейки.
        cols = [self.locate(lon, lats[0]) for lon in lons]
        rows = [self.locate(lons[0], lat) for lat in lats]
        col_tx = np.array([a.x for a, _, _ in cols], dtype=np.int64)
        col_px = np.array([px for _, px, _ in cols], dtype=np.int64)
        row_ty = np.array([a.y for a, _, _ in rows], dtype=np.int64)
        row_py = np.array([py for _, _, py in rows], dtype=np.int64)

        zoom = self.settings.dem_zoom
        tile_xs = list(dict.fromkeys(col_tx.tolist()))
        tile_ys = list(dict.fromkeys(row_ty.tolist()))
        tiles = await self._fetch_tiles(
            TileAddress(zoom=zoom, x=tx, y=ty) for ty in tile_ys for tx in tile_xs
        )

        elevations = np.zeros((n, n), dtype=np.float32)
        slopes = np.zeros((n, n), dtype=np.float32)
        for ty in tile_ys:
            row_idx = np.flatnonzero(row_ty == ty)
            for tx in tile_xs:
                col_idx = np.flatnonzero(col_tx == tx)
                raster = tiles[TileAddress(zoom=zoom, x=tx, y=ty)]
                src = np.ix_(row_py[row_idx], col_px[col_idx])
                dst = np.ix_(row_idx, col_idx)
                elevations[dst] = raster[src]
                slopes[dst] = slope_field(raster)[src]

        heights = (
            elevations.astype(np.float64) * exaggeration / METERS_PER_MODEL_UNIT
        ).astype(np.float32)

        logger.info(
            'Height field %dx%d over lon[%.4f, %.4f] lat[%.4f, %.4f]: %d tiles',
            n,
            n,
            region.min_lon,
            region.max_lon,
            region.min_lat,
            region.max_lat,
            len(tiles),
        )
        if len(tiles) >= LOG_MEMORY_EVERY_TILES:
            log_memory_usage(f'after height field, {len(tiles)} tiles')

        return HeightField(
            heights=heights,
            slopes=slopes,
            elevations_m=elevations,
            bounds=region,
            vertical_exaggeration=exaggeration,
            tile_count=len(tiles),
        )
