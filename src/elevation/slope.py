"""Central-difference slope over an elevation raster.

Border samples have no neighbour on one side and are defined as flat (0).
"""

from __future__ import annotations

import math

import numpy as np


def slope_at(raster: np.ndarray, row: int, col: int) -> float:
    """Slope magnitude at one raster sample (meters per sample step)."""
    h, w = raster.shape
    if row <= 0 or col <= 0 or row >= h - 1 or col >= w - 1:
        return 0.0
    dx = (float(raster[row, col + 1]) - float(raster[row, col - 1])) / 2.0
    dy = (float(raster[row + 1, col]) - float(raster[row - 1, col])) / 2.0
    return math.sqrt(dx * dx + dy * dy)


def slope_field(raster: np.ndarray) -> np.ndarray:
    """Slope for every sample of a raster, float32, zero on the border."""
    h, w = raster.shape
    out = np.zeros((h, w), dtype=np.float32)
    if h < 3 or w < 3:
        return out
    src = raster.astype(np.float64, copy=False)
    dx = (src[1:-1, 2:] - src[1:-1, :-2]) / 2.0
    dy = (src[2:, 1:-1] - src[:-2, 1:-1]) / 2.0
    out[1:-1, 1:-1] = np.sqrt(dx * dx + dy * dy)
    return out
