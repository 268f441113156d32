"""
Elevation service - the entry point for the render/UI layer.

Wires an aiohttp session, the Terrarium fetcher, the tile store, the query
engine and the profile sampler from one TerrainSettings object.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from domain.models import GeoPoint, TerrainSettings
from elevation.classify import classify_elevation
from elevation.engine import ElevationQueryEngine
from elevation.profile import ProfileSampler
from infrastructure.http.client import make_session_from_settings
from shared.diagnostics import log_tile_store_stats
from tiles.fetcher import TerrariumTileFetcher
from tiles.store import TileStore

if TYPE_CHECKING:
    from types import TracebackType

    import aiohttp

    from domain.models import RegionBounds, TileAddress
    from elevation.engine import HeightField
    from elevation.profile import ProfileResult
    from shared.constants import TerrainType
    from tiles.store import FailureObserver, TileStoreStats

logger = logging.getLogger(__name__)


class ElevationService:
    """Facade over the elevation core.

    Usage:
        async with ElevationService(settings) as service:
            h = await service.elevation_at(7.65, 45.97)
            profile = await service.sample_profile(GeoPoint(7.6, 45.9), GeoPoint(7.9, 46.0))
    """

    def __init__(
        self,
        settings: TerrainSettings | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        on_tile_failure: FailureObserver | None = None,
    ) -> None:
        self.settings = settings or TerrainSettings()
        self._external_session = session is not None
        self.session = session
        self._on_tile_failure = on_tile_failure
        self._failed_tiles: list[TileAddress] = []
        self.fetcher: TerrariumTileFetcher | None = None
        self.store: TileStore | None = None
        self.engine: ElevationQueryEngine | None = None
        self.sampler: ProfileSampler | None = None

    async def __aenter__(self) -> ElevationService:
        self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def open(self) -> None:
        """Create the session (unless one was passed in) and the pipeline."""
        if self.engine is not None:
            return
        if self.session is None:
            self.session = make_session_from_settings(self.settings)
        self.fetcher = TerrariumTileFetcher.from_settings(self.session, self.settings)
        self.store = TileStore.from_settings(
            self.fetcher.fetch,
            self.settings,
            on_failure=self._record_failure,
        )
        self.engine = ElevationQueryEngine(self.store, self.settings)
        self.sampler = ProfileSampler(self.engine)
        logger.info(
            'Elevation service ready: zoom=%d tile_res=%d source=%s',
            self.settings.dem_zoom,
            self.settings.tile_res,
            self.settings.tile_server_base,
        )

    async def close(self) -> None:
        if self.store is not None:
            log_tile_store_stats(self.store.stats(), self.settings.tile_res)
        if self.session is not None and not self._external_session:
            await self.session.close()
            self.session = None
        self.fetcher = self.store = self.engine = self.sampler = None

    def _record_failure(self, address: TileAddress, exc: BaseException) -> None:
        self._failed_tiles.append(address)
        if self._on_tile_failure is not None:
            self._on_tile_failure(address, exc)

    @property
    def failed_tiles(self) -> tuple[TileAddress, ...]:
        """Addresses that degraded to a zero raster, in failure order."""
        return tuple(self._failed_tiles)

    def _require_engine(self) -> ElevationQueryEngine:
        if self.engine is None:
            msg = 'ElevationService is not open; use "async with" or call open()'
            raise RuntimeError(msg)
        return self.engine

    async def elevation_at(self, lon: float, lat: float) -> float:
        return await self._require_engine().elevation_at(lon, lat)

    async def build_height_field(
        self,
        bounds: RegionBounds | None = None,
        *,
        origin: tuple[float, float] | None = None,
        extent: float | None = None,
        grid_resolution: int | None = None,
        vertical_exaggeration: float | None = None,
    ) -> HeightField:
        return await self._require_engine().build_height_field(
            bounds,
            origin=origin,
            extent=extent,
            grid_resolution=grid_resolution,
            vertical_exaggeration=vertical_exaggeration,
        )

    async def sample_profile(
        self,
        a: GeoPoint,
        b: GeoPoint,
        n: int | None = None,
    ) -> ProfileResult:
        self._require_engine()
        return await self.sampler.sample_profile(a, b, n)

    def classify(self, height_m: float) -> TerrainType:
        return classify_elevation(height_m, self.settings)

    def clear_cache(self) -> None:
        self._require_engine()
        self.store.clear()
        self._failed_tiles.clear()

    def cache_stats(self) -> TileStoreStats:
        self._require_engine()
        return self.store.stats()
