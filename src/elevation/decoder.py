"""Terrarium RGB -> elevation (meters) decoding."""

from __future__ import annotations

import numpy as np
from PIL import Image

from shared.constants import TERRARIUM_OFFSET_M


def decode_terrarium(r: int, g: int, b: int) -> float:
    """
    Декодирует один пиксель Terrarium в высоту (метры).

    elevation = (R*256 + G + B/256) - 32768
    """
    return (r * 256 + g + b / 256) - TERRARIUM_OFFSET_M


def decode_terrarium_image(img: Image.Image) -> np.ndarray:
    """
    Декодирует Terrarium-картинку в двумерный массив высот (метры).

    Returns a row-major float32 array of shape (height, width); row 0 is the
    northern edge of the tile.
    """
    if img.mode != 'RGB':
        img = img.convert('RGB')
    arr = np.asarray(img, dtype=np.float64)

    r = arr[:, :, 0]
    g = arr[:, :, 1]
    b = arr[:, :, 2]

    elevation = (r * 256.0 + g + b / 256.0) - TERRARIUM_OFFSET_M
    return elevation.astype(np.float32)
