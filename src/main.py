"""Command line entry point for Terrain Explorer elevation queries."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import numpy as np
from pydantic import ValidationError

from domain.errors import InvalidRequestError, ProjectionSingularityError
from domain.models import GeoPoint, RegionBounds
from domain.settings_store import load_settings
from infrastructure.http.client import resolve_cache_dir
from services.elevation_service import ElevationService
from shared.constants import TERRAIN_TYPE_LABELS
from shared.diagnostics import log_memory_usage

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


def setup_logging(level: int = logging.INFO, log_file: str | Path | None = None) -> None:
    """Configure application logging to stdout and, optionally, a UTF-8 log file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding='utf-8'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='terrain-explorer',
        description='Terrain Explorer - высоты рельефа по тайлам Terrarium',
    )
    parser.add_argument('--config', type=Path, help='Путь к TOML-файлу настроек')
    parser.add_argument('--log-file', type=Path, help='Дополнительно писать лог в файл')
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='Подробный (DEBUG) лог'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    point = sub.add_parser('point', help='Высота в точке')
    point.add_argument('lon', type=float)
    point.add_argument('lat', type=float)

    profile = sub.add_parser('profile', help='Профиль высот между двумя точками')
    profile.add_argument('lon1', type=float)
    profile.add_argument('lat1', type=float)
    profile.add_argument('lon2', type=float)
    profile.add_argument('lat2', type=float)
    profile.add_argument('-n', '--samples', type=int, default=None)

    hf = sub.add_parser('heightfield', help='Сетка высот и уклонов в .npz')
    hf.add_argument('min_lon', type=float)
    hf.add_argument('min_lat', type=float)
    hf.add_argument('max_lon', type=float)
    hf.add_argument('max_lat', type=float)
    hf.add_argument('-r', '--resolution', type=int, default=None)
    hf.add_argument('-e', '--exaggeration', type=float, default=None)
    hf.add_argument('-o', '--output', type=Path, required=True)

    sub.add_parser('cache-info', help='Каталог HTTP-кэша тайлов')
    return parser


async def _cmd_point(service: ElevationService, args: argparse.Namespace) -> int:
    point = GeoPoint(args.lon, args.lat)
    height = await service.elevation_at(point.lon, point.lat)
    terrain = service.classify(height)
    print(f'{point.lon:.6f} {point.lat:.6f} {height:.1f} m {TERRAIN_TYPE_LABELS[terrain]}')
    return EXIT_OK


async def _cmd_profile(service: ElevationService, args: argparse.Namespace) -> int:
    a = GeoPoint(args.lon1, args.lat1)
    b = GeoPoint(args.lon2, args.lat2)
    result = await service.sample_profile(a, b, args.samples)
    s = result.summary()
    print(
        f"distance {s['distance_km']:.3f} km, min {s['min_m']:.1f} m, "
        f"max {s['max_m']:.1f} m, mean {s['mean_m']:.1f} m, relief {s['relief_m']:.1f} m"
    )
    for i, (lon, lat, h, d) in enumerate(
        zip(result.lons, result.lats, result.elevations, result.distances_km, strict=True)
    ):
        print(f'{i:4d} {d:9.3f} {lon:.6f} {lat:.6f} {h:.1f}')
    return EXIT_OK


async def _cmd_heightfield(service: ElevationService, args: argparse.Namespace) -> int:
    bounds = RegionBounds(
        min_lon=args.min_lon,
        max_lon=args.max_lon,
        min_lat=args.min_lat,
        max_lat=args.max_lat,
    )
    field = await service.build_height_field(
        bounds,
        grid_resolution=args.resolution,
        vertical_exaggeration=args.exaggeration,
    )
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        out,
        heights=field.heights,
        slopes=field.slopes,
        elevations_m=field.elevations_m,
        bounds=np.array(
            [bounds.min_lon, bounds.min_lat, bounds.max_lon, bounds.max_lat],
            dtype=np.float64,
        ),
        vertical_exaggeration=np.float64(field.vertical_exaggeration),
    )
    print(f'{field.grid_resolution}x{field.grid_resolution} grid, {field.tile_count} tiles -> {out}')
    return EXIT_OK


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    if args.command == 'cache-info':
        state = 'enabled' if settings.http_cache_enabled else 'disabled'
        print(f'{resolve_cache_dir(settings.http_cache_dir)} ({state})')
        return EXIT_OK

    handlers = {
        'point': _cmd_point,
        'profile': _cmd_profile,
        'heightfield': _cmd_heightfield,
    }
    async with ElevationService(settings) as service:
        code = await handlers[args.command](service, args)
        if service.failed_tiles:
            logger.warning(
                '%d tile(s) unavailable, zero elevation used: %s',
                len(service.failed_tiles),
                ', '.join(str(a) for a in service.failed_tiles),
            )
        return code


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    log_memory_usage('startup')

    try:
        return asyncio.run(_run(args))
    except (
        InvalidRequestError,
        ProjectionSingularityError,
        ValidationError,
        FileNotFoundError,
    ) as e:
        print(f'error: {e}', file=sys.stderr)
        return EXIT_INVALID_INPUT
    except Exception as e:
        logger.error(f'Command {args.command} failed: {e}', exc_info=True)
        return EXIT_FAILURE


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
