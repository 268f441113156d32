"""In-memory store of decoded elevation rasters.

This module provides TileStore, which resolves a TileAddress to a decoded
float32 raster:
- one fetch per address, shared by every concurrent caller
- decoded rasters cached for the process lifetime (optionally LRU-bounded)
- failed tiles degrade to a zero-filled raster instead of raising
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

import numpy as np

from domain.errors import TileFetchError
from elevation.decoder import decode_terrarium_image
from shared.constants import TILE_SIZE

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from PIL import Image

    from domain.models import TerrainSettings, TileAddress

    FetchTile = Callable[[TileAddress], Awaitable[Image.Image]]
    FailureObserver = Callable[[TileAddress, BaseException], None]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileStoreStats:
    """Snapshot of the tile store contents."""

    count: int
    keys: tuple[TileAddress, ...]
    pending: int
    failed: int


class TileStore:
    """Cache of decoded elevation rasters keyed by TileAddress.

    Usage:
        store = TileStore(fetcher.fetch, tile_res=256)
        raster = await store.get(TileAddress(zoom=7, x=68, y=45))
        store.stats().count
        store.clear()
    """

    def __init__(
        self,
        fetch_tile: FetchTile,
        *,
        tile_res: int = TILE_SIZE,
        cache_failures: bool = True,
        max_cached_tiles: int | None = None,
        on_failure: FailureObserver | None = None,
    ) -> None:
        """Initialize tile store.

        Args:
            fetch_tile: Coroutine function returning the tile image for an address.
            tile_res: Expected raster size per side.
            cache_failures: Keep the zero raster of a failed tile (True) or
                retry on the next access (False).
            max_cached_tiles: LRU bound; None keeps every tile.
            on_failure: Observer called with (address, exception) on failure.
        """
        self._fetch = fetch_tile
        self.tile_res = int(tile_res)
        self.cache_failures = bool(cache_failures)
        self.max_cached_tiles = max_cached_tiles
        self.on_failure = on_failure
        self._cache: OrderedDict[TileAddress, np.ndarray] = OrderedDict()
        self._inflight: dict[TileAddress, asyncio.Task[np.ndarray]] = {}
        self._failed: set[TileAddress] = set()
        # Растёт при clear(): загрузки, начатые до очистки, не пишут в кэш
        self._generation = 0

    @classmethod
    def from_settings(
        cls,
        fetch_tile: FetchTile,
        settings: TerrainSettings,
        on_failure: FailureObserver | None = None,
    ) -> TileStore:
        return cls(
            fetch_tile,
            tile_res=settings.tile_res,
            cache_failures=settings.cache_failed_tiles,
            max_cached_tiles=settings.max_cached_tiles,
            on_failure=on_failure,
        )

    def zero_raster(self) -> np.ndarray:
        raster = np.zeros((self.tile_res, self.tile_res), dtype=np.float32)
        raster.setflags(write=False)
        return raster

    async def get(self, address: TileAddress) -> np.ndarray:
        """Decoded raster for the address; fetched at most once concurrently."""
        raster = self._cache.get(address)
        if raster is not None:
            self._cache.move_to_end(address)
            return raster

        task = self._inflight.get(address)
        if task is None:
            task = asyncio.ensure_future(self._load(address, self._generation))
            self._inflight[address] = task
            task.add_done_callback(partial(self._forget, address))
        # shield: отмена одного ожидающего не отменяет общую загрузку
        return await asyncio.shield(task)

    def _forget(self, address: TileAddress, task: asyncio.Task[np.ndarray]) -> None:
        if self._inflight.get(address) is task:
            del self._inflight[address]

    async def _load(self, address: TileAddress, generation: int) -> np.ndarray:
        try:
            img = await self._fetch(address)
            raster = decode_terrarium_image(img)
            if raster.shape != (self.tile_res, self.tile_res):
                msg = (
                    f'Tile {address} has shape {raster.shape}, '
                    f'expected {(self.tile_res, self.tile_res)}'
                )
                raise TileFetchError(address, msg)
        except Exception as e:
            return self._degrade(address, generation, e)

        raster.setflags(write=False)
        if generation == self._generation:
            self._remember(address, raster)
            self._failed.discard(address)
        logger.debug('Tile %s decoded', address)
        return raster

    def _degrade(
        self,
        address: TileAddress,
        generation: int,
        exc: BaseException,
    ) -> np.ndarray:
        logger.warning('Tile %s unavailable, using zero raster: %s', address, exc)
        if self.on_failure is not None:
            try:
                self.on_failure(address, exc)
            except Exception:
                logger.exception('Tile failure observer raised for %s', address)

        raster = self.zero_raster()
        if self.cache_failures and generation == self._generation:
            self._remember(address, raster)
            self._failed.add(address)
        return raster

    def _remember(self, address: TileAddress, raster: np.ndarray) -> None:
        self._cache[address] = raster
        self._cache.move_to_end(address)
        if self.max_cached_tiles is not None:
            while len(self._cache) > self.max_cached_tiles:
                old, _ = self._cache.popitem(last=False)
                self._failed.discard(old)
                logger.debug('Evicted tile %s', old)

    def clear(self) -> None:
        """Drop every cached raster and forget in-flight fetches."""
        count = len(self._cache)
        self._cache.clear()
        self._inflight.clear()
        self._failed.clear()
        self._generation += 1
        logger.info('Tile store cleared: %d tiles dropped', count)

    def stats(self) -> TileStoreStats:
        return TileStoreStats(
            count=len(self._cache),
            keys=tuple(self._cache.keys()),
            pending=len(self._inflight),
            failed=len(self._failed),
        )

    def __contains__(self, address: object) -> bool:
        return address in self._cache

    def __len__(self) -> int:
        return len(self._cache)
