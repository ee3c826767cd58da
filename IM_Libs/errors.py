"""
Exception types raised by the Image Manager core.

Every error derives from ImageManagerError so callers can catch the whole
family, and also from the built-in type that best describes it so generic
handlers (``except ValueError``, ``except OSError``) keep working.
"""


class ImageManagerError(Exception):
    """Base class for all Image Manager errors."""


class UnknownFilterError(ImageManagerError, ValueError):
    """Requested filter name is not in the catalog."""

    def __init__(self, name: str, available=()):
        self.name = name
        self.available = list(available)
        message = f"Unknown filter: {name!r}"
        if self.available:
            message += f". Available filters: {', '.join(self.available)}"
        super().__init__(message)


class UnsupportedFormatError(ImageManagerError, ValueError):
    """Requested output format is outside the supported set."""

    def __init__(self, format_token, supported=()):
        self.format_token = format_token
        self.supported = list(supported)
        message = f"Unsupported format: {format_token!r}"
        if self.supported:
            message += f". Supported formats: {', '.join(self.supported)}"
        super().__init__(message)


class DecodeError(ImageManagerError, OSError):
    """Source file could not be decoded into a raster."""

    def __init__(self, path, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Failed to read image file: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
