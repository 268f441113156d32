"""
Elevation profile along a straight line between two points.

Sample positions are interpolated linearly in lon/lat (no geodesic
correction); elevations come from the query engine's nearest-sample lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from domain.models import GeoPoint, ProfileRequest
from geo.mercator import haversine_km

if TYPE_CHECKING:
    from elevation.engine import ElevationQueryEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileResult(Sequence):
    """Ordered profile elevations (meters); index 0 is point A, the last is B."""

    a: GeoPoint
    b: GeoPoint
    elevations: tuple[float, ...]
    lons: tuple[float, ...]
    lats: tuple[float, ...]
    distance_km: float

    def __getitem__(self, index):
        return self.elevations[index]

    def __len__(self) -> int:
        return len(self.elevations)

    @property
    def min_m(self) -> float:
        return min(self.elevations)

    @property
    def max_m(self) -> float:
        return max(self.elevations)

    @property
    def mean_m(self) -> float:
        return sum(self.elevations) / len(self.elevations)

    @property
    def relief_m(self) -> float:
        """Перепад высот вдоль профиля."""
        return self.max_m - self.min_m

    @property
    def distances_km(self) -> tuple[float, ...]:
        """Distance of each sample from A, spaced evenly along the path."""
        last = len(self.elevations) - 1
        return tuple(self.distance_km * i / last for i in range(len(self.elevations)))

    def summary(self) -> dict[str, float]:
        return {
            'min_m': self.min_m,
            'max_m': self.max_m,
            'mean_m': self.mean_m,
            'relief_m': self.relief_m,
            'distance_km': self.distance_km,
        }


def _lerp(a: float, b: float, t: float) -> float:
    # Форма a*(1-t) + b*t даёт ровно a при t=0 и ровно b при t=1
    return a * (1.0 - t) + b * t


class ProfileSampler:
    """Samples elevations along A->B through an ElevationQueryEngine.

    Usage:
        sampler = ProfileSampler(engine)
        profile = await sampler.sample_profile(GeoPoint(7.6, 45.9), GeoPoint(7.9, 46.0))
        profile[0], profile[-1], profile.relief_m
    """

    def __init__(
        self,
        engine: ElevationQueryEngine,
        default_samples: int | None = None,
    ) -> None:
        self.engine = engine
        self.default_samples = (
            engine.settings.profile_samples if default_samples is None else default_samples
        )

    async def sample_profile(
        self,
        a: GeoPoint,
        b: GeoPoint,
        n: int | None = None,
    ) -> ProfileResult:
        """
        Elevation profile with ``n`` evenly spaced samples from ``a`` to ``b``.

        Args:
            a: Start point (sample 0).
            b: End point (sample n-1).
            n: Sample count, at least 2; defaults to settings.profile_samples.

        Returns:
            ProfileResult in index order regardless of tile fetch order.
        """
        request = ProfileRequest(a=a, b=b, sample_count=self.default_samples if n is None else n)
        count = request.sample_count

        if a == b:
            elevation = await self.engine.elevation_at(a.lon, a.lat)
            return ProfileResult(
                a=a,
                b=b,
                elevations=(elevation,) * count,
                lons=(a.lon,) * count,
                lats=(a.lat,) * count,
                distance_km=0.0,
            )

        last = count - 1
        lons = tuple(_lerp(a.lon, b.lon, i / last) for i in range(count))
        lats = tuple(_lerp(a.lat, b.lat, i / last) for i in range(count))
        elevations = await self.engine.elevations_at(list(zip(lons, lats, strict=True)))

        result = ProfileResult(
            a=a,
            b=b,
            elevations=tuple(elevations),
            lons=lons,
            lats=lats,
            distance_km=haversine_km(a, b),
        )
        logger.debug(
            'Profile %d samples over %.1f km: min=%.0f m max=%.0f m',
            count,
            result.distance_km,
            result.min_m,
            result.max_m,
        )
        return result
