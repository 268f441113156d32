"""
Spherical Web Mercator and the slippy-map tile grid.

Three coordinate spaces are involved: geographic (lon/lat degrees), the
projection plane (meters) and the discrete tile/pixel grid. All functions here
are pure.
"""

from __future__ import annotations

import math

from domain.errors import ProjectionSingularityError
from domain.models import GeoPoint, ProjectedPoint, RegionBounds, TileAddress
from shared.constants import (
    EARTH_MEAN_RADIUS_KM,
    EARTH_RADIUS_M,
    MERCATOR_SINGULAR_LAT_DEG,
    MODEL_LAT_SPAN_DEG,
    MODEL_SIZE,
    TILE_SIZE,
    WORLD_LNG_HALF_SPAN_DEG,
)

# Половина длины экватора = смещение начала координат сетки (метры)
ORIGIN_SHIFT_M = math.pi * EARTH_RADIUS_M


def to_projected(lon: float, lat: float) -> ProjectedPoint:
    """Geographic degrees -> Web Mercator meters.

    Raises ProjectionSingularityError at or beyond +-90 degrees latitude. The
    latitude is never clamped here.
    """
    if not (math.isfinite(lon) and math.isfinite(lat)):
        msg = f'Non-finite coordinate lon={lon!r} lat={lat!r}'
        raise ProjectionSingularityError(msg)
    if abs(lat) >= MERCATOR_SINGULAR_LAT_DEG:
        msg = f'Latitude {lat} is outside the Web Mercator domain (-90, 90)'
        raise ProjectionSingularityError(msg)
    # lon/180 * (pi*R): +-180 maps exactly onto the grid edge
    x = (lon / 180.0) * ORIGIN_SHIFT_M
    y = EARTH_RADIUS_M * math.log(math.tan(math.pi / 4.0 + lat * math.pi / 360.0))
    return ProjectedPoint(x=x, y=y)


def to_geographic(x: float, y: float) -> tuple[float, float]:
    """Web Mercator meters -> (lon, lat) degrees. Exact inverse of to_projected."""
    lon = math.degrees(x / EARTH_RADIUS_M)
    lat = math.degrees(2.0 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2.0)
    return lon, lat


def resolution(zoom: int, tile_res: int = TILE_SIZE) -> float:
    """Метров проекции на один сэмпл тайла на заданном зуме."""
    return (2.0 * math.pi * EARTH_RADIUS_M) / (tile_res * (2**zoom))


def global_pixel(
    point: ProjectedPoint,
    zoom: int,
    tile_res: int = TILE_SIZE,
) -> tuple[float, float]:
    """Continuous «world» pixel coordinates; y grows southwards."""
    res = resolution(zoom, tile_res)
    gx = (point.x + ORIGIN_SHIFT_M) / res
    gy = (ORIGIN_SHIFT_M - point.y) / res
    return gx, gy


def _global_pixel_index(
    point: ProjectedPoint,
    zoom: int,
    tile_res: int,
) -> tuple[int, int]:
    # x замыкаем по модулю (lon=180 совпадает с lon=-180), y ограничиваем сеткой
    world_px = tile_res * (2**zoom)
    gx, gy = global_pixel(point, zoom, tile_res)
    ix = math.floor(gx) % world_px
    iy = min(max(math.floor(gy), 0), world_px - 1)
    return ix, iy


def tile_address_for(
    point: ProjectedPoint,
    zoom: int,
    tile_res: int = TILE_SIZE,
) -> TileAddress:
    """Tile containing the projected point."""
    ix, iy = _global_pixel_index(point, zoom, tile_res)
    return TileAddress(zoom=zoom, x=ix // tile_res, y=iy // tile_res)


def pixel_within_tile(
    point: ProjectedPoint,
    zoom: int,
    tile_res: int = TILE_SIZE,
) -> tuple[int, int]:
    """(px, py) of the projected point inside its tile; py = raster row."""
    ix, iy = _global_pixel_index(point, zoom, tile_res)
    return ix % tile_res, iy % tile_res


def locate(
    lon: float,
    lat: float,
    zoom: int,
    tile_res: int = TILE_SIZE,
) -> tuple[TileAddress, int, int]:
    """Resolve a geographic point to (tile address, px, py).

    Every sampling path goes through here, so point queries and height fields
    always pick the same raster sample for the same coordinate.
    """
    point = to_projected(lon, lat)
    ix, iy = _global_pixel_index(point, zoom, tile_res)
    address = TileAddress(zoom=zoom, x=ix // tile_res, y=iy // tile_res)
    return address, ix % tile_res, iy % tile_res


def pixel_to_geographic(
    address: TileAddress,
    px: float,
    py: float,
    tile_res: int = TILE_SIZE,
    *,
    center: bool = True,
) -> tuple[float, float]:
    """(lon, lat) of a raster sample; its centre unless ``center`` is False."""
    offset = 0.5 if center else 0.0
    res = resolution(address.zoom, tile_res)
    gx = address.x * tile_res + px + offset
    gy = address.y * tile_res + py + offset
    x = gx * res - ORIGIN_SHIFT_M
    y = ORIGIN_SHIFT_M - gy * res
    return to_geographic(x, y)


def tile_bounds(address: TileAddress, tile_res: int = TILE_SIZE) -> RegionBounds:
    """Geographic bounds of a tile."""
    west, north = pixel_to_geographic(address, 0, 0, tile_res, center=False)
    east, south = pixel_to_geographic(address, tile_res, tile_res, tile_res, center=False)
    return RegionBounds(min_lon=west, max_lon=east, min_lat=south, max_lat=north)


def model_to_geographic(
    mx: float,
    mz: float,
    model_size: float = MODEL_SIZE,
) -> tuple[float, float]:
    """Model-space (x, z) -> (lon, lat); the model square spans the whole map."""
    half = model_size / 2.0
    lon = (mx / half) * WORLD_LNG_HALF_SPAN_DEG
    lat = (mz / half) * MODEL_LAT_SPAN_DEG
    return lon, lat


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points (km)."""
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat))
        * math.sin(d_lon / 2) ** 2
    )
    return 2.0 * EARTH_MEAN_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
