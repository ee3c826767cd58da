"""
Raster data model for the Image Manager.

A Raster is an immutable grid of RGBA pixels with every channel normalized
to [0, 1]. Pixels live in a read-only numpy array of shape (height, width, 4)
so filters can work on whole planes at once and never touch their input.

Classes:
    Raster: Immutable RGBA float raster

Functions:
    load_raster: Decode an image file into a Raster
    clamp_coordinate: Clamp a sample coordinate into [0, size - 1]
    pad_edges: Edge-replicated copy of a pixel array for neighbourhood sampling
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple, Union

import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

from IM_Libs.constants import CHANNEL_COUNT, MAX_CHANNEL_VALUE
from IM_Libs.errors import DecodeError

logger = logging.getLogger(__name__)

RgbaPixel = Tuple[float, float, float, float]


@dataclass(frozen=True, eq=False)
class Raster:
    """Immutable RGBA raster with channels normalized to [0, 1].

    Attributes:
        pixels: Read-only float64 array of shape (height, width, 4)
    """
    pixels: np.ndarray

    def __post_init__(self):
        array = np.array(self.pixels, dtype=np.float64, copy=True)
        if array.ndim != 3 or array.shape[2] != CHANNEL_COUNT:
            raise ValueError(
                f"Raster pixels must have shape (height, width, {CHANNEL_COUNT}), "
                f"got {array.shape}"
            )
        array.setflags(write=False)
        object.__setattr__(self, "pixels", array)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), matching PIL's ordering."""
        return self.width, self.height

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def is_opaque(self) -> bool:
        """True when every pixel has full alpha."""
        return bool(np.all(self.pixels[..., 3] >= 1.0))

    def pixel(self, x: int, y: int) -> RgbaPixel:
        """
        Read the color at column x, row y.

        Raises:
            IndexError: If (x, y) lies outside the raster
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"Pixel ({x}, {y}) outside raster of size {self.width}x{self.height}"
            )
        r, g, b, a = self.pixels[y, x]
        return float(r), float(g), float(b), float(a)

    def clamped_pixel(self, x: int, y: int) -> RgbaPixel:
        """Read a pixel with coordinates clamped to the raster edges."""
        return self.pixel(
            clamp_coordinate(x, self.width),
            clamp_coordinate(y, self.height),
        )

    def same_as(self, other: "Raster", tolerance: float = 0.0) -> bool:
        """Compare dimensions and pixel values within an absolute tolerance."""
        if self.pixels.shape != other.pixels.shape:
            return False
        return bool(np.allclose(self.pixels, other.pixels, rtol=0.0, atol=tolerance))

    @classmethod
    def blank(cls, width: int, height: int, color: RgbaPixel = (0.0, 0.0, 0.0, 0.0)) -> "Raster":
        """Create a raster filled with a single color."""
        if width < 0 or height < 0:
            raise ValueError(f"Raster dimensions must be non-negative, got {width}x{height}")
        array = np.empty((height, width, CHANNEL_COUNT), dtype=np.float64)
        array[...] = color
        return cls(array)

    @classmethod
    def from_image(cls, image: Any) -> "Raster":
        """
        Build a raster from a PIL Image.

        Args:
            image: PIL Image in any mode; converted to RGBA

        Returns:
            Raster with 8-bit channels scaled to [0, 1]

        Raises:
            TypeError: If image is not a PIL Image
        """
        if not hasattr(image, "convert") or not hasattr(image, "size"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        if image.mode != "RGBA":
            image = image.convert("RGBA")

        width, height = image.size
        array = np.asarray(image, dtype=np.float64).reshape(height, width, CHANNEL_COUNT)
        return cls(array / MAX_CHANNEL_VALUE)

    def to_image(self) -> Any:
        """Render the raster as an 8-bit RGBA PIL Image."""
        if self.is_empty:
            return Image.new("RGBA", self.size)
        data = np.rint(np.clip(self.pixels, 0.0, 1.0) * MAX_CHANNEL_VALUE).astype(np.uint8)
        return Image.fromarray(data)


def clamp_coordinate(value: int, size: int) -> int:
    """Clamp a sample coordinate into [0, size - 1] (edge replication)."""
    return min(max(value, 0), size - 1)


def pad_edges(pixels: np.ndarray, radius: int = 1) -> np.ndarray:
    """
    Return a copy of the pixel array padded by replicating edge pixels.

    Neighbour lookups at offset (dx, dy) for the pixel at (x, y) become
    ``padded[y + radius + dy, x + radius + dx]``.
    """
    return np.pad(pixels, ((radius, radius), (radius, radius), (0, 0)), mode="edge")


def load_raster(path: Union[str, Path]) -> Raster:
    """
    Decode an image file into a Raster.

    Args:
        path: Path to any image format Pillow can read

    Returns:
        Raster holding the first frame as RGBA

    Raises:
        DecodeError: If the file is missing, unreadable, not an image, or
                     larger than Pillow's decompression bomb limit
    """
    path = Path(path)

    if not path.is_file():
        raise DecodeError(path, "file does not exist")

    try:
        with Image.open(path) as img:
            img.load()
            raster = Raster.from_image(img)
    except UnidentifiedImageError as e:
        raise DecodeError(path, "unrecognized image data") from e
    except Image.DecompressionBombError as e:
        raise DecodeError(path, str(e)) from e
    except (OSError, ValueError) as e:
        raise DecodeError(path, str(e)) from e

    logger.debug(f"Decoded {path} ({raster.width}x{raster.height})")
    return raster
