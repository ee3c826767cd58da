"""
ImageEditingLib - Raster model and pixel filters

This module provides the immutable Raster type, the filter engine and
the closed filter catalog for the Image Manager.
"""

from IM_Libs.ImageEditingLib.raster import Raster, load_raster
from IM_Libs.ImageEditingLib.image_filters import ImageFilter
from IM_Libs.ImageEditingLib.filter_catalog import (
    list_filters,
    create_filter,
    apply_filter,
)

__all__ = [
    "Raster",
    "load_raster",
    "ImageFilter",
    "list_filters",
    "create_filter",
    "apply_filter",
]
