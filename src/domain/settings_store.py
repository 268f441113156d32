"""Loading and saving TerrainSettings (TOML file + environment overrides)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

import tomlkit

from domain.models import TerrainSettings
from domain.toml_sections import flat_to_sectioned, sectioned_to_flat
from shared.constants import ENV_PREFIX

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_NONE_STRINGS = frozenset({'', 'none', 'null'})


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str | None]:
    """Значения TERRAIN_<FIELD> из окружения для полей TerrainSettings."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, str | None] = {}
    for name, field in TerrainSettings.model_fields.items():
        key = f'{ENV_PREFIX}{name.upper()}'
        if key not in environ:
            continue
        raw = environ[key].strip()
        # Поля со значением None по умолчанию можно сбросить пустой строкой
        if field.default is None and raw.lower() in _NONE_STRINGS:
            overrides[name] = None
        else:
            overrides[name] = raw
    return overrides


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TerrainSettings:
    """
    Загрузка и валидация настроек.

    Order of precedence: environment (TERRAIN_*) over the TOML file over the
    built-in defaults.
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            msg = f'Settings file not found: {p}'
            raise FileNotFoundError(msg)
        doc = tomlkit.parse(p.read_text(encoding='utf-8'))
        data = sectioned_to_flat(doc.unwrap())
        logger.info('Settings loaded from %s', p)

    overrides = env_overrides(environ)
    if overrides:
        logger.info('Settings overridden from environment: %s', ', '.join(sorted(overrides)))
    data.update(overrides)
    return TerrainSettings.model_validate(data)


def save_settings(path: str | Path, settings: TerrainSettings) -> Path:
    """Сохранение настроек в секционированный TOML."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    text = tomlkit.dumps(flat_to_sectioned(settings.model_dump()))
    p.write_text(text, encoding='utf-8')
    return p
