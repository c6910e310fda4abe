"""
Error types and typed results for PhotoEdit.

Session operations that can fail return a result object instead of raising,
so an interactive caller can keep the session alive and let the operator retry.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple


class PhotoEditError(Exception):
    """Base class for all PhotoEdit errors."""


class DecodeFailure(PhotoEditError):
    """The source image could not be fetched or decoded."""

    def __init__(self, message: str, source: Any = None):
        super().__init__(message)
        self.source = source


class EncodeFailure(PhotoEditError):
    """The export encoder is unavailable or failed."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format


class RenderFailure(PhotoEditError):
    """The full-resolution render (pipeline or geometric transform) failed."""


class InvalidAdjustment(PhotoEditError, KeyError):
    """An adjustment name is unknown or its value is not a number."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class InvalidCrop(PhotoEditError, ValueError):
    """A crop parameter (aspect ratio name, handle) is not recognised."""


@dataclass(frozen=True)
class LoadResult:
    """Outcome of opening a source image."""
    ok: bool
    size: Optional[Tuple[int, int]] = None  # (width, height)
    error: Optional[PhotoEditError] = None

    @classmethod
    def success(cls, width: int, height: int) -> 'LoadResult':
        return cls(ok=True, size=(width, height))

    @classmethod
    def failure(cls, error: PhotoEditError) -> 'LoadResult':
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class ExportResult:
    """Outcome of exporting an editing session."""
    ok: bool
    data: Optional[bytes] = None
    width: int = 0
    height: int = 0
    format: Optional[str] = None
    mime_type: Optional[str] = None
    source: Any = None  # original reference, for correlating with a content record
    error: Optional[PhotoEditError] = None

    @classmethod
    def failure(cls, error: PhotoEditError, source: Any = None) -> 'ExportResult':
        return cls(ok=False, error=error, source=source)
