"""
Conversion Service for the Image Manager.

Encodes a Raster into one of the supported output formats and writes it to
an output directory. When a format cannot be produced for a raster the
service falls back to a PNG with the same base name instead of failing.

Format handling:
- PNG, JPG, GIF, TIFF: written directly with Pillow. JPEG has no alpha
  channel, so translucent rasters cannot be encoded as JPG and fall back.
- PDF: one page sized exactly to the raster (1 pixel = 1 point), with the
  raster drawn over the whole page.
- SVG: vector document of the raster's size that embeds the raster as a
  base64 PNG image. This wraps the pixels; it does not vectorize them.
- HEIF: placeholder. PNG data is written under a .heif name.

Every file is written to a temporary sibling first and renamed into place,
so a failed encode never leaves a partial file at the requested path.

Classes:
    ConversionConfig: Encoder settings
    ConversionRequest: One conversion to perform
    ConversionResult: The file actually written
    ConversionService: Performs conversions with PNG fallback

Functions:
    convert: Convert with the default service and return the written path
    convert_file: Decode an image file and convert it
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union
import base64
import io
import logging
import os
import tempfile
import xml.etree.ElementTree as ET

from PIL import Image

from IM_Libs.constants import (
    DEFAULT_JPEG_QUALITY,
    DEFAULT_PDF_RESOLUTION,
    FALLBACK_OUTPUT_FORMAT,
    SVG_NAMESPACE,
    TEMP_FILE_SUFFIX,
    XLINK_NAMESPACE,
)
from IM_Libs.ConversionLib.formats import ImageFormat, list_formats, parse_format
from IM_Libs.ImageEditingLib.raster import Raster, load_raster

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Encoder signature: (raster, destination path, config) -> None, raising on failure
Encoder = Callable[[Raster, Path, "ConversionConfig"], None]

FALLBACK_FORMAT = ImageFormat[FALLBACK_OUTPUT_FORMAT]


@dataclass
class ConversionConfig:
    """Configuration for encoders.

    Attributes:
        jpeg_quality: JPEG quality 1-100 (default: 95, only for JPG)
        tiff_compression: Pillow TIFF compression name (e.g. "tiff_lzw"), None = raw
        create_directories: Create the output directory if missing (default: True)
    """
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    tiff_compression: Optional[str] = None
    create_directories: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversionConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)

    def get_save_kwargs(self, image_format: ImageFormat) -> Dict[str, Any]:
        """Get PIL Image.save() kwargs for a raster format."""
        kwargs: Dict[str, Any] = {"format": image_format.pil_format}

        if image_format is ImageFormat.JPG:
            kwargs["quality"] = max(1, min(100, int(self.jpeg_quality)))
        elif image_format is ImageFormat.TIFF and self.tiff_compression:
            kwargs["compression"] = self.tiff_compression

        return kwargs


@dataclass(frozen=True)
class ConversionRequest:
    """One conversion: raster, target format token, output directory and base name."""
    raster: Raster
    target_format: str
    output_dir: Path
    base_name: str


@dataclass(frozen=True)
class ConversionResult:
    """The file a conversion produced.

    The extension of ``path`` is authoritative: after a fallback it is
    ``.png`` even though another format was requested.
    """
    path: Path
    requested_format: ImageFormat
    written_format: ImageFormat
    notice: Optional[str] = field(default=None, compare=False)

    @property
    def fell_back(self) -> bool:
        return self.written_format is not self.requested_format


# ============================================================================
# Encoders
# ============================================================================

def _require_pixels(raster: Raster, image_format: ImageFormat) -> None:
    if raster.is_empty:
        raise ValueError(f"Cannot encode an empty {raster.width}x{raster.height} raster as {image_format.name}")


def _encode_with_pillow(raster: Raster, path: Path, config: ConversionConfig,
                        image_format: ImageFormat) -> None:
    _require_pixels(raster, image_format)
    image = raster.to_image()
    image.save(path, **config.get_save_kwargs(image_format))


def encode_png(raster: Raster, path: Path, config: ConversionConfig) -> None:
    _encode_with_pillow(raster, path, config, ImageFormat.PNG)


def encode_jpg(raster: Raster, path: Path, config: ConversionConfig) -> None:
    """
    Encode as JPEG.

    Opaque rasters are written as RGB. Translucent rasters are handed to the
    encoder as RGBA, which Pillow refuses, so the caller falls back to PNG.
    """
    _require_pixels(raster, ImageFormat.JPG)
    image = raster.to_image()
    if raster.is_opaque:
        image = image.convert("RGB")
    image.save(path, **config.get_save_kwargs(ImageFormat.JPG))


def encode_gif(raster: Raster, path: Path, config: ConversionConfig) -> None:
    _encode_with_pillow(raster, path, config, ImageFormat.GIF)


def encode_tiff(raster: Raster, path: Path, config: ConversionConfig) -> None:
    _encode_with_pillow(raster, path, config, ImageFormat.TIFF)


def encode_pdf(raster: Raster, path: Path, config: ConversionConfig) -> None:
    """
    Write a single-page PDF whose page matches the raster's pixel size.

    At 72 dpi one pixel maps to one PDF point, so the page box is exactly
    width x height and the image covers it from the origin. Transparent
    areas are composited onto white because the page has no alpha.
    """
    if raster.is_empty:
        raise ValueError("Cannot create a PDF page for an empty raster")

    image = raster.to_image()
    if raster.is_opaque:
        page_image = image.convert("RGB")
    else:
        background = Image.new("RGBA", image.size, (255, 255, 255, 255))
        page_image = Image.alpha_composite(background, image).convert("RGB")

    page_image.save(path, format="PDF", resolution=DEFAULT_PDF_RESOLUTION)


def _png_bytes(raster: Raster) -> bytes:
    buffer = io.BytesIO()
    raster.to_image().save(buffer, format="PNG")
    return buffer.getvalue()


def build_svg_document(raster: Raster) -> ET.ElementTree:
    """
    Build an SVG document that embeds the raster as a full-canvas image.

    Args:
        raster: Raster to embed

    Returns:
        ElementTree with an <svg> root sized to the raster
    """
    if raster.is_empty:
        raise ValueError("Cannot create an SVG canvas for an empty raster")

    width, height = raster.size
    data_uri = "data:image/png;base64," + base64.b64encode(_png_bytes(raster)).decode("ascii")

    svg = ET.Element("svg", {
        "xmlns": SVG_NAMESPACE,
        "xmlns:xlink": XLINK_NAMESPACE,
        "width": str(width),
        "height": str(height),
        "viewBox": f"0 0 {width} {height}",
        "style": "fill-opacity:1; stroke:none; color-interpolation:auto; color-rendering:auto",
    })
    group = ET.SubElement(svg, "g", {
        "style": "image-rendering:optimizeQuality; shape-rendering:auto",
    })
    ET.SubElement(group, "image", {
        "x": "0",
        "y": "0",
        "width": str(width),
        "height": str(height),
        "preserveAspectRatio": "none",
        "xlink:href": data_uri,
        "style": "opacity:1",
    })
    return ET.ElementTree(svg)


def encode_svg(raster: Raster, path: Path, config: ConversionConfig) -> None:
    document = build_svg_document(raster)
    document.write(path, encoding="UTF-8", xml_declaration=True)


def encode_heif_placeholder(raster: Raster, path: Path, config: ConversionConfig) -> None:
    """Write PNG data; there is no HEIF encoder behind this format."""
    encode_png(raster, path, config)


DEFAULT_ENCODERS: Mapping[ImageFormat, Encoder] = {
    ImageFormat.PNG: encode_png,
    ImageFormat.JPG: encode_jpg,
    ImageFormat.GIF: encode_gif,
    ImageFormat.TIFF: encode_tiff,
    ImageFormat.PDF: encode_pdf,
    ImageFormat.SVG: encode_svg,
    ImageFormat.HEIF: encode_heif_placeholder,
}


def write_atomic(target: Path, write: Callable[[Path], None]) -> None:
    """
    Run write() against a temporary sibling of target, then rename it into place.

    The temporary file is removed if write() fails, so target is either the
    complete new file or untouched.
    """
    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}-",
        suffix=TEMP_FILE_SUFFIX,
        dir=target.parent,
    )
    os.close(fd)
    temp_path = Path(temp_name)
    try:
        write(temp_path)
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def _validate_base_name(base_name: str) -> str:
    base_name = str(base_name)
    if not base_name or base_name in (".", ".."):
        raise ValueError(f"base_name must be a non-empty file name, got {base_name!r}")
    if "/" in base_name or "\\" in base_name or os.sep in base_name:
        raise ValueError(f"base_name must not contain path separators: {base_name!r}")
    return base_name


# ============================================================================
# Service
# ============================================================================

class ConversionService:
    """
    Converts rasters into files of the supported formats.

    Example:
        >>> service = ConversionService()
        >>> result = service.convert(raster, "pdf", "out", "photo")
        >>> result.path
        PosixPath('out/photo.pdf')
    """

    def __init__(
        self,
        config: Optional[ConversionConfig] = None,
        encoders: Optional[Mapping[ImageFormat, Encoder]] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Encoder settings (default: ConversionConfig())
            encoders: Per-format encoder overrides, merged over DEFAULT_ENCODERS
        """
        self.config = config or ConversionConfig()
        self._encoders: Dict[ImageFormat, Encoder] = dict(DEFAULT_ENCODERS)
        if encoders:
            self._encoders.update(encoders)

    @staticmethod
    def list_formats():
        return list_formats()

    def convert(
        self,
        raster: Raster,
        target_format: Union[str, ImageFormat],
        output_dir: PathLike,
        base_name: str,
    ) -> ConversionResult:
        """
        Encode raster as target_format into output_dir/base_name.<ext>.

        Args:
            raster: Source raster
            target_format: Format token, case-insensitive (PNG, JPG, GIF, TIFF, PDF, SVG, HEIF)
            output_dir: Destination directory, created if missing
            base_name: File name without extension

        Returns:
            ConversionResult for the file written; its path ends in .png if
            the requested format could not be produced

        Raises:
            UnsupportedFormatError: If target_format is not supported (no I/O done)
            TypeError: If raster is not a Raster
            ValueError: If base_name is empty or contains path separators
            OSError: If the output directory cannot be used or the PNG
                     fallback itself cannot be written
        """
        image_format = parse_format(target_format)

        if not isinstance(raster, Raster):
            raise TypeError(f"Expected Raster, got {type(raster)}")
        base_name = _validate_base_name(base_name)

        output_dir = self._prepare_output_dir(Path(output_dir))
        target = output_dir / image_format.filename(base_name)
        encoder = self._encoders[image_format]

        try:
            write_atomic(target, lambda path: encoder(raster, path, self.config))
        except Exception as e:
            if image_format is FALLBACK_FORMAT:
                raise OSError(f"Failed to save image to {target}: {str(e)}") from e
            return self._write_fallback(raster, output_dir, base_name, image_format, e)

        notice = None
        if image_format is ImageFormat.HEIF:
            notice = "HEIF encoding unavailable; PNG data written under .heif name"

        logger.debug(f"Wrote {image_format.name} file {target}")
        return ConversionResult(
            path=target,
            requested_format=image_format,
            written_format=image_format,
            notice=notice,
        )

    def convert_request(self, request: ConversionRequest) -> ConversionResult:
        """Perform a ConversionRequest."""
        return self.convert(
            request.raster,
            request.target_format,
            request.output_dir,
            request.base_name,
        )

    def convert_file(
        self,
        source_path: PathLike,
        target_format: Union[str, ImageFormat],
        output_dir: PathLike,
        base_name: Optional[str] = None,
    ) -> ConversionResult:
        """
        Decode an image file and convert it.

        Args:
            source_path: Image file to read
            target_format: Format token
            output_dir: Destination directory
            base_name: Output name without extension (default: source file stem)

        Raises:
            UnsupportedFormatError: If target_format is not supported (checked before decoding)
            DecodeError: If the source cannot be decoded
        """
        parse_format(target_format)
        source_path = Path(source_path)
        raster = load_raster(source_path)
        return self.convert(raster, target_format, output_dir, base_name or source_path.stem)

    def _prepare_output_dir(self, output_dir: Path) -> Path:
        if self.config.create_directories:
            output_dir.mkdir(parents=True, exist_ok=True)
        elif not output_dir.is_dir():
            raise OSError(f"Output directory does not exist: {output_dir}")
        return output_dir

    def _write_fallback(
        self,
        raster: Raster,
        output_dir: Path,
        base_name: str,
        requested: ImageFormat,
        error: Exception,
    ) -> ConversionResult:
        fallback_path = output_dir / FALLBACK_FORMAT.filename(base_name)
        logger.warning(
            f"Failed to write {requested.name} for '{base_name}' ({error}); "
            f"using {FALLBACK_FORMAT.name} fallback {fallback_path}"
        )

        fallback_encoder = self._encoders[FALLBACK_FORMAT]
        try:
            write_atomic(fallback_path, lambda path: fallback_encoder(raster, path, self.config))
        except Exception as e:
            raise OSError(f"Failed to save fallback image to {fallback_path}: {str(e)}") from e

        return ConversionResult(
            path=fallback_path,
            requested_format=requested,
            written_format=FALLBACK_FORMAT,
            notice=f"{requested.name} conversion failed: {error}",
        )


_default_service = ConversionService()


def convert(
    raster: Raster,
    target_format: Union[str, ImageFormat],
    output_dir: PathLike,
    base_name: str,
) -> Path:
    """
    Convert with the default service and return the path actually written.

    See ConversionService.convert for arguments and errors.
    """
    return _default_service.convert(raster, target_format, output_dir, base_name).path


def convert_file(
    source_path: PathLike,
    target_format: Union[str, ImageFormat],
    output_dir: PathLike,
    base_name: Optional[str] = None,
) -> Path:
    """Decode source_path and convert it with the default service."""
    return _default_service.convert_file(source_path, target_format, output_dir, base_name).path
