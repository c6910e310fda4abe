"""
Geometry for PhotoEdit: crop box model and the crop/rotate/flip transform.
"""

from .crop import (
    CropBox, DEFAULT_CROP, ASPECT_RATIOS, MIN_CROP_SIZE,
    fit_aspect_ratio, get_aspect_ratio_value
)
from .transform import (
    apply_crop_transform, output_size_for_crop, preview_dimensions,
    fit_within, downsample
)

__all__ = [
    'CropBox',
    'DEFAULT_CROP',
    'ASPECT_RATIOS',
    'MIN_CROP_SIZE',
    'fit_aspect_ratio',
    'get_aspect_ratio_value',
    'apply_crop_transform',
    'output_size_for_crop',
    'preview_dimensions',
    'fit_within',
    'downsample',
]
