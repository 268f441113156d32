"""
Загрузка Terrarium-тайлов по HTTP.

One GET per tile against ``{tile_server_base}/{zoom}/{x}/{y}.{ext}``; the
response body is decoded with Pillow.
"""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import TYPE_CHECKING

import aiohttp
from PIL import Image

from domain.errors import TileFetchError
from shared.constants import (
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_BACKOFF_DEFAULT_S,
    HTTP_CONCURRENCY_DEFAULT,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
    TERRARIUM_TILE_EXT,
)

if TYPE_CHECKING:
    from domain.models import TerrainSettings, TileAddress

logger = logging.getLogger(__name__)


class TerrariumTileFetcher:
    """HTTP fetcher for Terrarium PNG tiles with retries and bounded concurrency.

    Usage:
        fetcher = TerrariumTileFetcher(session, base_url=settings.tile_server_base)
        img = await fetcher.fetch(TileAddress(zoom=7, x=68, y=45))
    """

    def __init__(
        self,
        client: aiohttp.ClientSession,
        *,
        base_url: str,
        ext: str = TERRARIUM_TILE_EXT,
        timeout_s: float = HTTP_TIMEOUT_DEFAULT,
        retries: int = HTTP_RETRIES_DEFAULT,
        backoff_s: float = HTTP_BACKOFF_DEFAULT_S,
        concurrency: int = HTTP_CONCURRENCY_DEFAULT,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip('/')
        self.ext = ext
        self.timeout_s = float(timeout_s)
        self.retries = max(1, int(retries))
        self.backoff_s = max(0.0, float(backoff_s))
        self.semaphore = asyncio.Semaphore(max(1, int(concurrency)))
        self._stats_downloads = 0
        self._stats_errors = 0

    @classmethod
    def from_settings(
        cls,
        client: aiohttp.ClientSession,
        settings: TerrainSettings,
    ) -> TerrariumTileFetcher:
        return cls(
            client,
            base_url=settings.tile_server_base,
            ext=settings.tile_ext,
            timeout_s=settings.http_timeout_s,
            retries=settings.http_retries,
            backoff_s=settings.http_backoff_s,
            concurrency=settings.http_concurrency,
        )

    @property
    def stats(self) -> dict[str, int]:
        return {
            'downloads': self._stats_downloads,
            'errors': self._stats_errors,
        }

    def url_for(self, address: TileAddress) -> str:
        """{base_url}/{zoom}/{x}/{y}.{ext}"""
        return '/'.join((self.base_url, *address.path_parts(self.ext)))

    async def fetch(self, address: TileAddress) -> Image.Image:
        """
        Загружает один тайл и возвращает PIL.Image в RGB.

        401/403/404 fail immediately; 429, 5xx and network errors are retried
        with exponential backoff. Every failure surfaces as TileFetchError.
        """
        async with self.semaphore:
            try:
                img = await self._fetch_with_retries(address)
            except TileFetchError:
                self._stats_errors += 1
                raise
        self._stats_downloads += 1
        return img

    async def _fetch_with_retries(self, address: TileAddress) -> Image.Image:
        url = self.url_for(address)
        timeout = aiohttp.ClientTimeout(total=self.timeout_s)

        last_exc: Exception | None = None
        for attempt in range(self.retries):
            try:
                async with self.client.get(url, timeout=timeout) as resp:
                    sc = resp.status
                    if sc == HTTP_OK:
                        data = await resp.read()
                        return self._decode(address, data)
                    if sc in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN, HTTP_NOT_FOUND):
                        msg = f'HTTP {sc} for tile {address} url={url}'
                        raise TileFetchError(address, msg)
                    if sc == HTTP_TOO_MANY_REQUESTS or HTTP_5XX_MIN <= sc < HTTP_5XX_MAX:
                        last_exc = RuntimeError(f'HTTP {sc} for tile {address} url={url}')
                    else:
                        last_exc = RuntimeError(
                            f'Unexpected HTTP {sc} for tile {address} url={url}'
                        )
            except TileFetchError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exc = e
            logger.debug(
                'Tile %s attempt %d/%d failed: %s',
                address,
                attempt + 1,
                self.retries,
                last_exc,
            )
            if attempt + 1 < self.retries:
                await asyncio.sleep(self.backoff_s * (2**attempt))
        msg = f'Failed to fetch tile {address}: {last_exc}'
        raise TileFetchError(address, msg)

    @staticmethod
    def _decode(address: TileAddress, data: bytes) -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
            return img.convert('RGB')
        except OSError as e:
            msg = f'Cannot decode image for tile {address}: {e}'
            raise TileFetchError(address, msg) from e
