"""
IM_Libs - Image Manager Library Modules

This package contains the core functionality of the Image Manager,
organized into specialized sub-packages:

- ImageEditingLib: Raster model, pixel filters and the filter catalog
- ConversionLib: Output formats, format conversion with PNG fallback, batch conversion
"""

__version__ = "0.1.0"
