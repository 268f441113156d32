"""Sectioned TOML layout for TerrainSettings.

The model itself stays flat; on disk the fields are grouped into sections with
shorter key names, e.g. ``vertical_exaggeration`` is stored as
``[terrain] exaggeration``.
"""

from __future__ import annotations

from typing import Any

# section -> {field name in TerrainSettings: key inside the section}
SECTION_MAP: dict[str, dict[str, str]] = {
    'terrain': {
        'tile_res': 'tile_res',
        'dem_zoom': 'dem_zoom',
        'vertical_exaggeration': 'exaggeration',
        'model_size': 'model_size',
    },
    'profile': {
        'profile_samples': 'samples',
    },
    'tiles': {
        'tile_server_base': 'server_base',
        'tile_ext': 'ext',
        'cache_failed_tiles': 'cache_failed',
        'max_cached_tiles': 'max_cached',
    },
    'http': {
        'http_timeout_s': 'timeout_s',
        'http_retries': 'retries',
        'http_backoff_s': 'backoff_s',
        'http_concurrency': 'concurrency',
        'http_cache_enabled': 'cache_enabled',
        'http_cache_dir': 'cache_dir',
        'http_cache_expire_hours': 'cache_expire_hours',
    },
    'elevation': {
        'water_level': 'water_level',
        'mountain_level': 'mountain_level',
        'snow_level': 'snow_level',
    },
}

# Секция для полей, не описанных в SECTION_MAP
COMMON_SECTION = 'common'

_FIELD_LOCATION: dict[str, tuple[str, str]] = {
    field: (section, key)
    for section, fields in SECTION_MAP.items()
    for field, key in fields.items()
}

_KEY_TO_FIELD: dict[str, dict[str, str]] = {
    section: {key: field for field, key in fields.items()}
    for section, fields in SECTION_MAP.items()
}


def flat_to_sectioned(flat: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Group flat settings into TOML sections.

    None values are skipped since TOML cannot express them; loading the file
    back restores the model default.
    """
    sections: dict[str, dict[str, Any]] = {}
    for field, value in flat.items():
        if value is None:
            continue
        section, key = _FIELD_LOCATION.get(field, (COMMON_SECTION, field))
        sections.setdefault(section, {})[key] = value
    return sections


def sectioned_to_flat(data: dict[str, Any]) -> dict[str, Any]:
    """Inverse of flat_to_sectioned; top-level keys of a flat file pass through."""
    flat: dict[str, Any] = {}
    for name, value in data.items():
        if not isinstance(value, dict):
            flat[name] = value
            continue
        keys = _KEY_TO_FIELD.get(name, {})
        flat.update({keys.get(key, key): item for key, item in value.items()})
    return flat
