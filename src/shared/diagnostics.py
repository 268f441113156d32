"""
Diagnostic utilities.

Memory and tile cache usage logging; the tile cache is unbounded by default so
its growth is worth watching in long-running processes.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from tiles.store import TileStoreStats

logger = logging.getLogger(__name__)

_BYTES_IN_MB = 1024 * 1024


def get_memory_info() -> dict[str, float]:
    """Process and system memory usage in MB."""
    process = psutil.Process(os.getpid())
    mem = process.memory_info()
    vm = psutil.virtual_memory()
    return {
        'process_rss_mb': mem.rss / _BYTES_IN_MB,
        'process_vms_mb': mem.vms / _BYTES_IN_MB,
        'system_available_mb': vm.available / _BYTES_IN_MB,
        'system_percent': float(vm.percent),
    }


def log_memory_usage(context: str = '', level: int = logging.DEBUG) -> None:
    """Quick memory usage logging."""
    try:
        info = get_memory_info()
    except psutil.Error as e:
        logger.debug('Memory info unavailable: %s', e)
        return
    prefix = f'[{context}] ' if context else ''
    logger.log(
        level,
        '%sMemory: RSS=%.1f MB, VMS=%.1f MB, system available=%.1f MB (%.1f%% used)',
        prefix,
        info['process_rss_mb'],
        info['process_vms_mb'],
        info['system_available_mb'],
        info['system_percent'],
    )


def estimate_cache_mb(stats: TileStoreStats, tile_res: int) -> float:
    """Approximate memory held by cached float32 rasters."""
    return stats.count * tile_res * tile_res * 4 / _BYTES_IN_MB


def log_tile_store_stats(
    stats: TileStoreStats,
    tile_res: int,
    level: int = logging.INFO,
) -> None:
    logger.log(
        level,
        'Tile store: %d tiles (~%.1f MB), %d pending, %d failed',
        stats.count,
        estimate_cache_mb(stats, tile_res),
        stats.pending,
        stats.failed,
    )
