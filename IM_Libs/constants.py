"""
Constants and configuration values for the Image Manager.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the library.
"""

# Raster constants
CHANNEL_COUNT = 4
MAX_CHANNEL_VALUE = 255

# Rec. 709 luminance weights
LUMA_RED = 0.2126
LUMA_GREEN = 0.7152
LUMA_BLUE = 0.0722

# Sepia matrix (rows produce R', G', B')
SEPIA_MATRIX = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)

# Sharpen kernel, applied to RGB only
SHARPEN_KERNEL = (
    (0.0, -0.5, 0.0),
    (-0.5, 3.0, -0.5),
    (0.0, -0.5, 0.0),
)

# Filter default parameters
BLUR_RADIUS = 1
CONTRAST_FACTOR = 1.5
BRIGHTNESS_FACTOR = 0.3
SATURATE_FACTOR = 1.5

# Filter display names (catalog order)
FILTER_BLACK_AND_WHITE = "Black and White"
FILTER_SEPIA = "Sepia"
FILTER_BLUR = "Blur"
FILTER_SHARPEN = "Sharpen"
FILTER_COLOR_INVERT = "Color Invert"
FILTER_FLIP_IMAGE = "Flip Image"
FILTER_CONTRAST = "Contrast"
FILTER_BRIGHTNESS = "Brightness"
FILTER_SATURATE = "Saturate"

# Conversion defaults
FALLBACK_OUTPUT_FORMAT = "PNG"
DEFAULT_JPEG_QUALITY = 95
DEFAULT_PDF_RESOLUTION = 72.0
TEMP_FILE_SUFFIX = ".part"

# Batch naming
FILTERED_SUFFIX = "_filtered"

# SVG
SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
