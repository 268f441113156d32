"""Error taxonomy for elevation queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.models import TileAddress


class TerrainError(Exception):
    """Base class for all elevation core errors."""


class ProjectionSingularityError(TerrainError, ValueError):
    """Latitude is outside the range where Web Mercator is defined."""


class InvalidRequestError(TerrainError, ValueError):
    """Malformed query input, detected before any tile is fetched."""


class TileFetchError(TerrainError, RuntimeError):
    """A tile could not be downloaded or decoded."""

    def __init__(self, address: TileAddress, message: str) -> None:
        super().__init__(message)
        self.address = address
