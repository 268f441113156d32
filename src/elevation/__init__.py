"""Elevation module - Terrarium decoding, point/region queries and profiles."""

from .classify import classify_elevation
from .decoder import decode_terrarium, decode_terrarium_image
from .engine import ElevationQueryEngine, HeightField
from .profile import ProfileResult, ProfileSampler
from .slope import slope_at, slope_field

__all__ = [
    'ElevationQueryEngine',
    'HeightField',
    'ProfileResult',
    'ProfileSampler',
    'classify_elevation',
    'decode_terrarium',
    'decode_terrarium_image',
    'slope_at',
    'slope_field',
]
