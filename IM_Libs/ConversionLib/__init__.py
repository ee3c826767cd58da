"""
ConversionLib - Format conversion

This module handles writing rasters to PNG, JPG, GIF, TIFF, PDF, SVG and
HEIF files, with PNG fallback, and running conversions in batches.
"""

from IM_Libs.ConversionLib.formats import ImageFormat, list_formats, parse_format
from IM_Libs.ConversionLib.conversion_service import (
    ConversionConfig,
    ConversionRequest,
    ConversionResult,
    ConversionService,
    convert,
    convert_file,
)
from IM_Libs.ConversionLib.batch_converter import (
    BatchConverter,
    BatchItem,
    BatchProgress,
    BatchReport,
)

__all__ = [
    "ImageFormat",
    "list_formats",
    "parse_format",
    "ConversionConfig",
    "ConversionRequest",
    "ConversionResult",
    "ConversionService",
    "convert",
    "convert_file",
    "BatchConverter",
    "BatchItem",
    "BatchProgress",
    "BatchReport",
]
