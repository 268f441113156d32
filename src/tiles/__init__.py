"""Tile fetching and caching.

This module provides:
- TerrariumTileFetcher: HTTP fetcher for Terrarium tiles with retries
- TileStore: in-memory store of decoded rasters with request deduplication
"""

from tiles.fetcher import TerrariumTileFetcher
from tiles.store import TileStore, TileStoreStats

__all__ = [
    'TerrariumTileFetcher',
    'TileStore',
    'TileStoreStats',
]
