from __future__ import annotations

import contextlib
import logging
import os
import sqlite3
import ssl
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiohttp
import certifi
from aiohttp_client_cache import CachedSession, SQLiteBackend

from shared.constants import HTTP_CACHE_FILE

if TYPE_CHECKING:
    from domain.models import TerrainSettings

logger = logging.getLogger(__name__)


def resolve_cache_dir(configured: str = '') -> Path:
    """Каталог HTTP-кэша тайлов: из настроек, XDG_CACHE_HOME или домашней папки."""
    if configured:
        return Path(configured).expanduser().resolve()

    xdg = os.getenv('XDG_CACHE_HOME')
    if xdg:
        return (Path(xdg) / 'terrain-explorer' / 'tiles').resolve()
    return (Path.home() / '.terrain_explorer_cache' / 'tiles').resolve()


def make_http_session(
    cache_dir: Path | None,
    *,
    expire_hours: int = 0,
) -> aiohttp.ClientSession:
    """aiohttp session with certifi SSL; SQLite response cache when cache_dir is set."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)

    if cache_dir is None:
        return aiohttp.ClientSession(connector=connector)

    cache_dir.mkdir(parents=True, exist_ok=True)
    cache_path = cache_dir / HTTP_CACHE_FILE
    with contextlib.suppress(sqlite3.Error):
        if not cache_path.exists():
            with sqlite3.connect(cache_path) as _conn:
                _conn.execute('PRAGMA journal_mode=WAL;')
    expire_td = timedelta(hours=max(0, int(expire_hours)))
    backend = SQLiteBackend(str(cache_path), expire_after=expire_td)
    logger.info('HTTP tile cache at %s (expire after %s)', cache_path, expire_td)
    return CachedSession(
        cache=backend,
        connector=connector,
        expire_after=expire_td,
    )


def make_session_from_settings(settings: TerrainSettings) -> aiohttp.ClientSession:
    if not settings.http_cache_enabled:
        return make_http_session(None)
    return make_http_session(
        resolve_cache_dir(settings.http_cache_dir),
        expire_hours=settings.http_cache_expire_hours,
    )
