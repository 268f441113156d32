"""Pytest configuration and fixtures for Terrain Explorer tests."""

import sys
from pathlib import Path

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

import numpy as np
import pytest
from PIL import Image


def terrarium_rgb(elevation_m):
    """Inverse Terrarium encoding for test fixtures (integer meters)."""
    v = int(elevation_m) + 32768
    return v // 256, v % 256, 0


@pytest.fixture
def make_tile():
    """Factory for Terrarium tile images.

    make_tile(size, fill=(128, 0, 0), pixels={(row, col): (r, g, b)})
    """

    def _make(size=16, fill=(128, 0, 0), pixels=None):
        arr = np.empty((size, size, 3), dtype=np.uint8)
        arr[:, :] = fill
        for (row, col), rgb in (pixels or {}).items():
            arr[row, col] = rgb
        return Image.fromarray(arr)

    return _make


@pytest.fixture
def ramp_tile():
    """Tile whose elevation equals 10 * column (meters)."""

    def _make(size=16):
        arr = np.empty((size, size, 3), dtype=np.uint8)
        for col in range(size):
            arr[:, col] = terrarium_rgb(10 * col)
        return Image.fromarray(arr)

    return _make


@pytest.fixture
def encode_elevation():
    return terrarium_rgb
