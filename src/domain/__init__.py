"""Domain layer - value types, settings and errors."""
from domain.errors import (
    InvalidRequestError,
    ProjectionSingularityError,
    TerrainError,
    TileFetchError,
)
from domain.models import (
    GeoPoint,
    ProfileRequest,
    ProjectedPoint,
    RegionBounds,
    TerrainSettings,
    TileAddress,
)
from domain.settings_store import load_settings, save_settings

__all__ = [
    'GeoPoint',
    'InvalidRequestError',
    'ProfileRequest',
    'ProjectedPoint',
    'ProjectionSingularityError',
    'RegionBounds',
    'TerrainError',
    'TerrainSettings',
    'TileAddress',
    'TileFetchError',
    'load_settings',
    'save_settings',
]
