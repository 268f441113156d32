from __future__ import annotations

from typing import TYPE_CHECKING

from shared.constants import SAND_BAND_M, TerrainType

if TYPE_CHECKING:
    from domain.models import TerrainSettings


def classify_elevation(height_m: float, settings: TerrainSettings) -> TerrainType:
    """Тип местности по высоте (метры)."""
    if height_m <= settings.water_level:
        return TerrainType.WATER
    if height_m <= settings.water_level + SAND_BAND_M:
        return TerrainType.SAND
    if height_m >= settings.snow_level:
        return TerrainType.SNOW
    if height_m >= settings.mountain_level:
        return TerrainType.MOUNTAIN
    return TerrainType.PLAIN
