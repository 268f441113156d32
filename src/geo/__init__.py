"""Geo module - Web Mercator projection and tile grid addressing."""

from .mercator import (
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

__all__ = [
    'haversine_km',
    'locate',
    'model_to_geographic',
    'pixel_to_geographic',
    'pixel_within_tile',
    'resolution',
    'tile_address_for',
    'tile_bounds',
    'to_geographic',
    'to_projected',
]
