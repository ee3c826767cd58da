"""
Output formats supported by the conversion service.

The set is closed: PNG, JPG, GIF, TIFF, PDF, SVG and HEIF. Each format has a
canonical file extension and, where Pillow writes it directly, the Pillow
format token passed to Image.save().
"""

from enum import Enum
from typing import List, Optional

from IM_Libs.errors import UnsupportedFormatError


class ImageFormat(Enum):
    """Enumerated output formats; value is the canonical extension."""

    PNG = "png"
    JPG = "jpg"
    GIF = "gif"
    TIFF = "tiff"
    PDF = "pdf"
    SVG = "svg"
    HEIF = "heif"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def pil_format(self) -> Optional[str]:
        """Pillow format name for raster formats, None for the special cases."""
        return _PIL_FORMATS.get(self)

    @property
    def is_raster(self) -> bool:
        return self in _PIL_FORMATS

    def filename(self, base_name: str) -> str:
        return f"{base_name}.{self.extension}"


# PIL uses "JPEG" not "JPG"
_PIL_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.JPG: "JPEG",
    ImageFormat.GIF: "GIF",
    ImageFormat.TIFF: "TIFF",
}


def list_formats() -> List[str]:
    """
    Get the supported format tokens.

    Returns:
        Format names in declaration order (e.g. ['PNG', 'JPG', ...])
    """
    return [fmt.name for fmt in ImageFormat]


def parse_format(token) -> ImageFormat:
    """
    Resolve a format token case-insensitively.

    Args:
        token: Format name such as "png" or "TIFF", or an ImageFormat

    Returns:
        The matching ImageFormat

    Raises:
        UnsupportedFormatError: If token is not one of the supported formats
    """
    if isinstance(token, ImageFormat):
        return token

    key = str(token).strip().upper()
    try:
        return ImageFormat[key]
    except KeyError:
        raise UnsupportedFormatError(token, list_formats()) from None
