from __future__ import annotations

import math
from dataclasses import dataclass

from pydantic import BaseModel, field_validator

from domain.errors import InvalidRequestError
from shared.constants import (
    DEM_ZOOM,
    HTTP_BACKOFF_DEFAULT_S,
    HTTP_CACHE_ENABLED,
    HTTP_CACHE_EXPIRE_HOURS,
    HTTP_CONCURRENCY_DEFAULT,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    MAX_DEM_ZOOM,
    MERCATOR_LAT_LIMIT_DEG,
    MIN_GRID_RESOLUTION,
    MIN_PROFILE_SAMPLES,
    MODEL_SIZE,
    MOUNTAIN_LEVEL_M,
    PROFILE_SAMPLES,
    SNOW_LEVEL_M,
    TERRARIUM_TILE_BASE,
    TERRARIUM_TILE_EXT,
    TILE_SIZE,
    VERTICAL_EXAGGERATION,
    WATER_LEVEL_M,
    WORLD_LNG_HALF_SPAN_DEG,
)


def _require_finite(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        msg = f'{name} must be a finite number, got {value!r}'
        raise InvalidRequestError(msg)
    return value


@dataclass(frozen=True)
class GeoPoint:
    """Geographic coordinate in degrees (WGS84 lon/lat)."""

    lon: float
    lat: float

    def __post_init__(self) -> None:
        lon = _require_finite('lon', self.lon)
        lat = _require_finite('lat', self.lat)
        if not -WORLD_LNG_HALF_SPAN_DEG <= lon <= WORLD_LNG_HALF_SPAN_DEG:
            msg = f'lon {lon} is outside [-180, 180]'
            raise InvalidRequestError(msg)
        if not -MERCATOR_LAT_LIMIT_DEG <= lat <= MERCATOR_LAT_LIMIT_DEG:
            msg = (
                f'lat {lat} is outside [-{MERCATOR_LAT_LIMIT_DEG}, '
                f'{MERCATOR_LAT_LIMIT_DEG}]'
            )
            raise InvalidRequestError(msg)
        object.__setattr__(self, 'lon', lon)
        object.__setattr__(self, 'lat', lat)


@dataclass(frozen=True)
class ProjectedPoint:
    """Point on the Web Mercator plane (meters)."""

    x: float
    y: float


@dataclass(frozen=True)
class TileAddress:
    """Key for tile identification in the tile cache."""

    zoom: int
    x: int
    y: int

    def __post_init__(self) -> None:
        if self.zoom < 0 or self.x < 0 or self.y < 0:
            msg = f'Tile address must be non-negative, got {self.zoom}/{self.x}/{self.y}'
            raise InvalidRequestError(msg)

    def path_parts(self, ext: str = TERRARIUM_TILE_EXT) -> tuple[str, str, str]:
        """URL path components: zoom, x and y with extension."""
        return (str(self.zoom), str(self.x), f'{self.y}.{ext}')

    def __str__(self) -> str:
        return f'{self.zoom}/{self.x}/{self.y}'


@dataclass(frozen=True)
class RegionBounds:
    """Rectangular geographic region, min strictly below max on both axes."""

    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def __post_init__(self) -> None:
        for name in ('min_lon', 'max_lon', 'min_lat', 'max_lat'):
            object.__setattr__(self, name, _require_finite(name, getattr(self, name)))
        if self.min_lon >= self.max_lon:
            msg = f'min_lon ({self.min_lon}) must be less than max_lon ({self.max_lon})'
            raise InvalidRequestError(msg)
        if self.min_lat >= self.max_lat:
            msg = f'min_lat ({self.min_lat}) must be less than max_lat ({self.max_lat})'
            raise InvalidRequestError(msg)

    @classmethod
    def from_model_space(
        cls,
        origin_x: float,
        origin_z: float,
        extent: float,
        model_size: float = MODEL_SIZE,
    ) -> RegionBounds:
        """Bounds of a model-space square of side ``extent`` centred on the origin."""
        from geo.mercator import model_to_geographic

        extent = _require_finite('extent', extent)
        if extent <= 0:
            msg = f'extent must be positive, got {extent}'
            raise InvalidRequestError(msg)
        half = extent / 2.0
        west, south = model_to_geographic(origin_x - half, origin_z - half, model_size)
        east, north = model_to_geographic(origin_x + half, origin_z + half, model_size)
        return cls(min_lon=west, max_lon=east, min_lat=south, max_lat=north)

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            lon=(self.min_lon + self.max_lon) / 2.0,
            lat=(self.min_lat + self.max_lat) / 2.0,
        )


@dataclass(frozen=True)
class ProfileRequest:
    """Straight-line profile between two points."""

    a: GeoPoint
    b: GeoPoint
    sample_count: int = PROFILE_SAMPLES

    def __post_init__(self) -> None:
        if int(self.sample_count) != self.sample_count or self.sample_count < MIN_PROFILE_SAMPLES:
            msg = f'sample_count must be an integer >= {MIN_PROFILE_SAMPLES}, got {self.sample_count}'
            raise InvalidRequestError(msg)
        object.__setattr__(self, 'sample_count', int(self.sample_count))


class TerrainSettings(BaseModel):
    """
    Настройки ядра высот.

    Passed explicitly to the tile store, query engine and profile sampler.
    """

    model_config = {
        'extra': 'ignore',
        'frozen': True,
    }

    # Сетка тайлов
    tile_res: int = TILE_SIZE
    dem_zoom: int = DEM_ZOOM
    # Поле высот
    vertical_exaggeration: float = VERTICAL_EXAGGERATION
    model_size: float = MODEL_SIZE
    # Профиль
    profile_samples: int = PROFILE_SAMPLES

    # Источник тайлов
    tile_server_base: str = TERRARIUM_TILE_BASE
    tile_ext: str = TERRARIUM_TILE_EXT
    # Кэшировать нулевой тайл после ошибки загрузки (иначе повторять запрос)
    cache_failed_tiles: bool = True
    # None = без ограничения (кэш живёт всё время процесса)
    max_cached_tiles: int | None = None

    # HTTP
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT
    http_retries: int = HTTP_RETRIES_DEFAULT
    http_backoff_s: float = HTTP_BACKOFF_DEFAULT_S
    http_concurrency: int = HTTP_CONCURRENCY_DEFAULT
    http_cache_enabled: bool = HTTP_CACHE_ENABLED
    http_cache_dir: str = ''
    http_cache_expire_hours: int = HTTP_CACHE_EXPIRE_HOURS

    # Классификация местности
    water_level: float = WATER_LEVEL_M
    mountain_level: float = MOUNTAIN_LEVEL_M
    snow_level: float = SNOW_LEVEL_M

    @field_validator('tile_res')
    @classmethod
    def validate_tile_res(cls, v: int) -> int:
        v = int(v)
        if v < MIN_GRID_RESOLUTION:
            msg = f'tile_res must be >= {MIN_GRID_RESOLUTION}'
            raise ValueError(msg)
        return v

    @field_validator('dem_zoom')
    @classmethod
    def validate_zoom(cls, v: int) -> int:
        v = int(v)
        if not 0 <= v <= MAX_DEM_ZOOM:
            msg = f'dem_zoom must be in [0, {MAX_DEM_ZOOM}]'
            raise ValueError(msg)
        return v

    @field_validator('vertical_exaggeration', 'model_size', 'http_timeout_s')
    @classmethod
    def validate_positive(cls, v: float) -> float:
        v = float(v)
        if not v > 0:
            msg = 'value must be positive'
            raise ValueError(msg)
        return v

    @field_validator('profile_samples')
    @classmethod
    def validate_profile_samples(cls, v: int) -> int:
        v = int(v)
        if v < MIN_PROFILE_SAMPLES:
            msg = f'profile_samples must be >= {MIN_PROFILE_SAMPLES}'
            raise ValueError(msg)
        return v

    @field_validator('http_retries', 'http_concurrency')
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        v = int(v)
        if v < 1:
            msg = 'value must be >= 1'
            raise ValueError(msg)
        return v

    @field_validator('http_backoff_s')
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        v = float(v)
        if v < 0:
            msg = 'http_backoff_s cannot be negative'
            raise ValueError(msg)
        return v

    @field_validator('max_cached_tiles')
    @classmethod
    def validate_max_cached_tiles(cls, v: int | None) -> int | None:
        if v is None:
            return None
        v = int(v)
        if v < 1:
            msg = 'max_cached_tiles must be >= 1 or unset'
            raise ValueError(msg)
        return v
