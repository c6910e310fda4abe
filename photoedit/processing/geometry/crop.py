"""
Crop box model.

Crop rectangles are stored in percent of the source image so they survive
the switch between the preview buffer and the full-resolution original.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
import logging
import math

from photoedit.errors import InvalidCrop

logger = logging.getLogger(__name__)

MIN_CROP_SIZE = 10.0        # percent, smallest usable crop edge
MAX_STRAIGHTEN = 45.0       # degrees, fine rotation limit
ASPECT_MARGIN = 80.0        # percent, size of a freshly fitted aspect-ratio box

# Named aspect ratios (width / height); None means unlocked
ASPECT_RATIOS: Dict[str, Optional[float]] = {
    'free': None,
    '1:1': 1.0,
    '4:3': 4 / 3,
    '3:4': 3 / 4,
    '16:9': 16 / 9,
    '9:16': 9 / 16,
}


def get_aspect_ratio_value(name: str) -> Optional[float]:
    """Return width/height for a named ratio, None for 'free'."""
    if name not in ASPECT_RATIOS:
        raise InvalidCrop(f"Unknown aspect ratio '{name}'")
    return ASPECT_RATIOS[name]


def _finite(value: float, default: float) -> float:
    value = float(value)
    return default if math.isnan(value) or math.isinf(value) else value


@dataclass(frozen=True)
class CropBox:
    """Crop rectangle (percent of source) plus rotation and flips."""
    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0
    rotation: int = 0              # quarter turns in degrees: 0, 90, 180, 270
    straighten: float = 0.0        # fine rotation, -45 to 45 degrees
    flip_horizontal: bool = False
    flip_vertical: bool = False

    def __post_init__(self):
        width = min(100.0, max(MIN_CROP_SIZE, _finite(self.width, 100.0)))
        height = min(100.0, max(MIN_CROP_SIZE, _finite(self.height, 100.0)))
        x = min(100.0 - width, max(0.0, _finite(self.x, 0.0)))
        y = min(100.0 - height, max(0.0, _finite(self.y, 0.0)))

        rotation = int(round(_finite(self.rotation, 0.0) / 90.0)) * 90 % 360
        straighten = min(MAX_STRAIGHTEN, max(-MAX_STRAIGHTEN, _finite(self.straighten, 0.0)))

        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', y)
        object.__setattr__(self, 'width', width)
        object.__setattr__(self, 'height', height)
        object.__setattr__(self, 'rotation', rotation)
        object.__setattr__(self, 'straighten', straighten)
        object.__setattr__(self, 'flip_horizontal', bool(self.flip_horizontal))
        object.__setattr__(self, 'flip_vertical', bool(self.flip_vertical))

    @property
    def total_rotation(self) -> float:
        """The one rotation the transform applies: quarter turns plus straighten."""
        return (self.rotation + self.straighten) % 360

    @property
    def quarter_turns(self) -> int:
        return self.rotation // 90

    @property
    def rect(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def with_rect(self, x: float, y: float, width: float, height: float) -> 'CropBox':
        return replace(self, x=x, y=y, width=width, height=height)

    def rotated(self, degrees: int) -> 'CropBox':
        """Quick rotation by a multiple of 90 degrees."""
        if degrees % 90:
            raise InvalidCrop(f"Quick rotation must be a multiple of 90, got {degrees}")
        return replace(self, rotation=(self.rotation + degrees) % 360)

    def with_straighten(self, degrees: float) -> 'CropBox':
        return replace(self, straighten=degrees)

    def flipped(self, horizontal: bool = False, vertical: bool = False) -> 'CropBox':
        return replace(
            self,
            flip_horizontal=self.flip_horizontal ^ horizontal,
            flip_vertical=self.flip_vertical ^ vertical,
        )

    def to_pixels(self, source_width: int, source_height: int) -> Tuple[float, float, float, float]:
        """Crop rectangle in source pixel coordinates (may be fractional)."""
        return (
            self.x / 100.0 * source_width,
            self.y / 100.0 * source_height,
            self.width / 100.0 * source_width,
            self.height / 100.0 * source_height,
        )

    def is_within_bounds(self, tolerance: float = 1e-9) -> bool:
        return (
            self.x >= -tolerance and self.y >= -tolerance
            and self.x + self.width <= 100.0 + tolerance
            and self.y + self.height <= 100.0 + tolerance
            and self.width >= MIN_CROP_SIZE - tolerance
            and self.height >= MIN_CROP_SIZE - tolerance
        )


DEFAULT_CROP = CropBox()


def fit_aspect_ratio(ratio: float, image_width: int, image_height: int,
                     margin: float = ASPECT_MARGIN) -> Tuple[float, float, float, float]:
    """
    Largest centered rectangle with the given pixel aspect ratio inside the margin.

    Args:
        ratio: Desired width/height in pixels
        image_width: Source width in pixels
        image_height: Source height in pixels
        margin: Maximum box edge in percent

    Returns:
        (x, y, width, height) in percent
    """
    image_aspect = image_width / image_height

    if ratio > image_aspect:
        # Wider than the image: fit to width
        width = margin
        height = width / ratio * image_aspect
        if height > margin:
            height = margin
            width = height * ratio / image_aspect
    else:
        # Taller than the image: fit to height
        height = margin
        width = height * ratio / image_aspect
        if width > margin:
            width = margin
            height = width * image_aspect / ratio

    return ((100.0 - width) / 2.0, (100.0 - height) / 2.0, width, height)
