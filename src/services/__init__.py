"""Services package - the elevation facade used by the CLI and the UI layer."""

from services.elevation_service import ElevationService

__all__ = ['ElevationService']
