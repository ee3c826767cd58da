"""
Pytest configuration and shared fixtures for Image Manager tests.

This module provides shared rasters and directories used across
multiple test modules.
"""

import numpy as np
import pytest

from IM_Libs.ImageEditingLib.raster import Raster


def make_gradient(width: int = 100, height: int = 100) -> Raster:
    """Opaque gradient: red follows x, green follows y, blue follows (x * y) % 256."""
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.empty((height, width, 4), dtype=np.float64)
    pixels[..., 0] = xs / max(width - 1, 1)
    pixels[..., 1] = ys / max(height - 1, 1)
    pixels[..., 2] = ((xs * ys) % 256) / 255.0
    pixels[..., 3] = 1.0
    return Raster(pixels)


@pytest.fixture
def gradient_raster():
    """100x100 opaque gradient raster."""
    return make_gradient()


@pytest.fixture
def random_raster():
    """
    Provide a 7x5 raster with reproducible random values in [0, 1].

    Width and height differ so transposition bugs show up.
    """
    rng = np.random.default_rng(1234)
    return Raster(rng.random((5, 7, 4)))


@pytest.fixture
def translucent_raster():
    """8x6 raster with half-transparent pixels."""
    return Raster.blank(8, 6, (0.2, 0.4, 0.6, 0.5))


@pytest.fixture
def output_dir(tmp_path):
    """
    Provide a not-yet-existing output directory.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path inside tmp_path that the code under test must create
    """
    return tmp_path / "converted"
