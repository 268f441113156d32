"""HTTP client infrastructure."""
from infrastructure.http.client import (
    make_http_session,
    make_session_from_settings,
    resolve_cache_dir,
)

__all__ = [
    'make_http_session',
    'make_session_from_settings',
    'resolve_cache_dir',
]
