"""
Filter Catalog.

Closed registry mapping filter display names to filter classes. Lookup is
case-insensitive and every call to create_filter returns a fresh instance.

The mapping is built once at import time and exposed read-only, so it can be
shared between threads without locking.

Functions:
    list_filters: Display names in catalog order
    create_filter: Construct a filter by (case-insensitive) name
    apply_filter: Construct and apply a filter in one call
    get_filter_class: Look up the filter class for a name
"""

from types import MappingProxyType
from typing import List, Mapping, Type

import logging

from IM_Libs.errors import UnknownFilterError
from IM_Libs.ImageEditingLib.image_filters import (
    BlackAndWhiteFilter,
    BlurFilter,
    BrightnessFilter,
    ContrastFilter,
    FlipFilter,
    ImageFilter,
    InvertFilter,
    SaturateFilter,
    SepiaFilter,
    SharpenFilter,
)
from IM_Libs.ImageEditingLib.raster import Raster

logger = logging.getLogger(__name__)

# Catalog order is the display order
_FILTER_CLASSES = (
    BlackAndWhiteFilter,
    SepiaFilter,
    BlurFilter,
    SharpenFilter,
    InvertFilter,
    FlipFilter,
    ContrastFilter,
    BrightnessFilter,
    SaturateFilter,
)

FILTER_NAMES = tuple(cls.name for cls in _FILTER_CLASSES)

FILTER_CATALOG: Mapping[str, Type[ImageFilter]] = MappingProxyType(
    {cls.name.lower(): cls for cls in _FILTER_CLASSES}
)


def _normalize_name(name: str) -> str:
    return str(name).strip().lower()


def list_filters() -> List[str]:
    """
    Get the display names of all available filters.

    Returns:
        Names in stable catalog order (e.g. ['Black and White', 'Sepia', ...])
    """
    return list(FILTER_NAMES)


def get_filter_class(name: str) -> Type[ImageFilter]:
    """
    Look up the filter class registered under a display name.

    Raises:
        UnknownFilterError: If no filter matches name (case-insensitive)
    """
    try:
        return FILTER_CATALOG[_normalize_name(name)]
    except KeyError:
        raise UnknownFilterError(name, FILTER_NAMES) from None


def create_filter(name: str) -> ImageFilter:
    """
    Create a new filter instance by display name.

    Args:
        name: Filter name, matched case-insensitively ("sepia", "SEPIA", ...)

    Returns:
        A fresh ImageFilter instance

    Raises:
        UnknownFilterError: If name does not match any filter
    """
    filter_cls = get_filter_class(name)
    return filter_cls()


def apply_filter(name: str, raster: Raster) -> Raster:
    """
    Apply the named filter to a raster.

    Args:
        name: Filter display name (case-insensitive)
        raster: Source raster, left untouched

    Returns:
        New filtered raster with the same dimensions

    Raises:
        UnknownFilterError: If name does not match any filter
    """
    image_filter = create_filter(name)
    logger.debug(f"Applying filter '{image_filter.name}'")
    return image_filter.apply(raster)
