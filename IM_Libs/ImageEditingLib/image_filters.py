"""
Pixel Filter Operations.

Provides the deterministic per-pixel filters of the Image Manager:
- Color filters: black and white, sepia, color invert
- Tone filters: contrast, brightness, saturate
- Neighbourhood filters: blur (3x3 box), sharpen (3x3 kernel)
- Geometric filters: vertical flip

Every filter reads a Raster and returns a new Raster of the same size.
Neighbourhood filters sample with edge replication, never wraparound.

Example:
    >>> from IM_Libs.ImageEditingLib.raster import load_raster
    >>> raster = load_raster("photo.jpg")
    >>>
    >>> gray = apply_black_and_white(raster)
    >>> sharp = apply_sharpen(raster)
    >>> brighter = BrightnessFilter(factor=0.2).apply(raster)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Sequence

import numpy as np

from IM_Libs.constants import (
    BLUR_RADIUS,
    BRIGHTNESS_FACTOR,
    CONTRAST_FACTOR,
    FILTER_BLACK_AND_WHITE,
    FILTER_BLUR,
    FILTER_BRIGHTNESS,
    FILTER_COLOR_INVERT,
    FILTER_CONTRAST,
    FILTER_FLIP_IMAGE,
    FILTER_SATURATE,
    FILTER_SEPIA,
    FILTER_SHARPEN,
    LUMA_BLUE,
    LUMA_GREEN,
    LUMA_RED,
    SATURATE_FACTOR,
    SEPIA_MATRIX,
    SHARPEN_KERNEL,
)
from IM_Libs.ImageEditingLib.raster import Raster, pad_edges


def _require_raster(raster) -> None:
    if not isinstance(raster, Raster):
        raise TypeError(f"Expected Raster, got {type(raster)}")


def _luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 709 luminance of an (..., 3) array."""
    return rgb[..., 0] * LUMA_RED + rgb[..., 1] * LUMA_GREEN + rgb[..., 2] * LUMA_BLUE


def _with_rgb(raster: Raster, rgb: np.ndarray) -> Raster:
    """New raster with replaced RGB planes and the source alpha."""
    out = np.empty_like(raster.pixels)
    out[..., :3] = rgb
    out[..., 3] = raster.pixels[..., 3]
    return Raster(out)


def _neighbourhood(raster: Raster, radius: int):
    """
    Yield (dy, dx, view) for every offset in the (2r+1)^2 window.

    Each view has the raster's shape and holds the edge-clamped sample at
    that offset for every pixel.
    """
    padded = pad_edges(raster.pixels, radius)
    height, width = raster.height, raster.width
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            yield dy, dx, padded[radius + dy:radius + dy + height, radius + dx:radius + dx + width]


# ============================================================================
# Color Filters
# ============================================================================

def apply_black_and_white(raster: Raster) -> Raster:
    """
    Convert to grayscale using Rec. 709 luminance weights.

    Args:
        raster: Source raster

    Returns:
        Raster with R = G = B = luminance, alpha preserved
    """
    _require_raster(raster)
    gray = _luminance(raster.pixels[..., :3])
    return _with_rgb(raster, np.repeat(gray[..., np.newaxis], 3, axis=-1))


def apply_sepia(raster: Raster) -> Raster:
    """
    Apply the classic sepia tone matrix.

    Each output channel is capped at 1.0; alpha is preserved.
    """
    _require_raster(raster)
    matrix = np.asarray(SEPIA_MATRIX, dtype=np.float64)
    toned = raster.pixels[..., :3] @ matrix.T
    return _with_rgb(raster, np.minimum(toned, 1.0))


def apply_color_invert(raster: Raster) -> Raster:
    """Invert RGB (1 - v); alpha preserved."""
    _require_raster(raster)
    return _with_rgb(raster, 1.0 - raster.pixels[..., :3])


# ============================================================================
# Tone Filters
# ============================================================================

def apply_contrast(raster: Raster, factor: float = CONTRAST_FACTOR) -> Raster:
    """
    Scale each RGB channel's distance from middle gray.

    Args:
        raster: Source raster
        factor: Contrast multiplier (> 1 increases contrast)

    Returns:
        Raster with (v - 0.5) * factor + 0.5, clamped to [0, 1]
    """
    _require_raster(raster)
    rgb = (raster.pixels[..., :3] - 0.5) * factor + 0.5
    return _with_rgb(raster, np.clip(rgb, 0.0, 1.0))


def apply_brightness(raster: Raster, factor: float = BRIGHTNESS_FACTOR) -> Raster:
    """
    Add a constant to each RGB channel.

    Args:
        raster: Source raster
        factor: Amount added to every channel

    Returns:
        Raster with min(v + factor, 1.0) per channel
    """
    _require_raster(raster)
    rgb = raster.pixels[..., :3] + factor
    # lower bound only matters for negative factors
    return _with_rgb(raster, np.clip(rgb, 0.0, 1.0))


def apply_saturate(raster: Raster, factor: float = SATURATE_FACTOR) -> Raster:
    """
    Scale each RGB channel's distance from the pixel luminance.

    Args:
        raster: Source raster
        factor: Saturation multiplier (> 1 increases saturation)

    Returns:
        Raster with L + (v - L) * factor, clamped to [0, 1]
    """
    _require_raster(raster)
    rgb = raster.pixels[..., :3]
    luminance = _luminance(rgb)[..., np.newaxis]
    return _with_rgb(raster, np.clip(luminance + (rgb - luminance) * factor, 0.0, 1.0))


# ============================================================================
# Neighbourhood Filters
# ============================================================================

def apply_blur(raster: Raster, radius: int = BLUR_RADIUS) -> Raster:
    """
    Box blur: each pixel becomes the mean of its (2r+1)x(2r+1) window.

    All four channels, alpha included, are averaged independently.

    Args:
        raster: Source raster
        radius: Window radius (1 = 3x3, 9 samples)

    Returns:
        Blurred raster

    Raises:
        ValueError: If radius < 0
    """
    _require_raster(raster)
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    if raster.is_empty:
        return Raster(raster.pixels)

    total = np.zeros_like(raster.pixels)
    count = 0
    for _, _, view in _neighbourhood(raster, radius):
        total += view
        count += 1
    return Raster(total / count)


def apply_sharpen(raster: Raster, kernel: Sequence[Sequence[float]] = SHARPEN_KERNEL) -> Raster:
    """
    Sharpen with a 3x3 convolution kernel.

    RGB is convolved with the kernel and clamped to [0, 1]. Alpha is NOT
    convolved: it is the plain mean of the nine sampled alphas, clamped.

    Args:
        raster: Source raster
        kernel: 3x3 weights indexed [dy + 1][dx + 1]

    Returns:
        Sharpened raster
    """
    _require_raster(raster)
    weights = np.asarray(kernel, dtype=np.float64)
    if weights.shape != (3, 3):
        raise ValueError(f"kernel must be 3x3, got shape {weights.shape}")
    if raster.is_empty:
        return Raster(raster.pixels)

    rgb = np.zeros(raster.pixels.shape[:2] + (3,), dtype=np.float64)
    alpha = np.zeros(raster.pixels.shape[:2], dtype=np.float64)
    for dy, dx, view in _neighbourhood(raster, 1):
        rgb += view[..., :3] * weights[dy + 1, dx + 1]
        alpha += view[..., 3]

    out = np.empty_like(raster.pixels)
    out[..., :3] = np.clip(rgb, 0.0, 1.0)
    out[..., 3] = np.clip(alpha / 9.0, 0.0, 1.0)
    return Raster(out)


# ============================================================================
# Geometric Filters
# ============================================================================

def apply_flip_vertical(raster: Raster) -> Raster:
    """Mirror top to bottom: out(x, y) = in(x, H - 1 - y)."""
    _require_raster(raster)
    return Raster(raster.pixels[::-1, :, :])


# ============================================================================
# Filter Value Objects
# ============================================================================

class ImageFilter(ABC):
    """A named transform from one Raster to a new Raster of equal size."""

    name: ClassVar[str] = ""

    @abstractmethod
    def apply(self, raster: Raster) -> Raster:
        """Return the filtered copy of raster."""

    def __call__(self, raster: Raster) -> Raster:
        return self.apply(raster)


@dataclass(frozen=True)
class BlackAndWhiteFilter(ImageFilter):
    name: ClassVar[str] = FILTER_BLACK_AND_WHITE

    def apply(self, raster: Raster) -> Raster:
        return apply_black_and_white(raster)


@dataclass(frozen=True)
class SepiaFilter(ImageFilter):
    name: ClassVar[str] = FILTER_SEPIA

    def apply(self, raster: Raster) -> Raster:
        return apply_sepia(raster)


@dataclass(frozen=True)
class BlurFilter(ImageFilter):
    name: ClassVar[str] = FILTER_BLUR
    radius: int = BLUR_RADIUS

    def apply(self, raster: Raster) -> Raster:
        return apply_blur(raster, self.radius)


@dataclass(frozen=True)
class SharpenFilter(ImageFilter):
    name: ClassVar[str] = FILTER_SHARPEN

    def apply(self, raster: Raster) -> Raster:
        return apply_sharpen(raster)


@dataclass(frozen=True)
class InvertFilter(ImageFilter):
    name: ClassVar[str] = FILTER_COLOR_INVERT

    def apply(self, raster: Raster) -> Raster:
        return apply_color_invert(raster)


@dataclass(frozen=True)
class FlipFilter(ImageFilter):
    name: ClassVar[str] = FILTER_FLIP_IMAGE

    def apply(self, raster: Raster) -> Raster:
        return apply_flip_vertical(raster)


@dataclass(frozen=True)
class ContrastFilter(ImageFilter):
    name: ClassVar[str] = FILTER_CONTRAST
    factor: float = CONTRAST_FACTOR

    def apply(self, raster: Raster) -> Raster:
        return apply_contrast(raster, self.factor)


@dataclass(frozen=True)
class BrightnessFilter(ImageFilter):
    name: ClassVar[str] = FILTER_BRIGHTNESS
    factor: float = BRIGHTNESS_FACTOR

    def apply(self, raster: Raster) -> Raster:
        return apply_brightness(raster, self.factor)


@dataclass(frozen=True)
class SaturateFilter(ImageFilter):
    name: ClassVar[str] = FILTER_SATURATE
    factor: float = SATURATE_FACTOR

    def apply(self, raster: Raster) -> Raster:
        return apply_saturate(raster, self.factor)
