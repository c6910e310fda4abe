"""
Full-resolution export for PhotoEdit.
"""

from .exporter import (
    ExportSettings,
    ExportedImage,
    encode_image,
    encode_with_fallback,
    encode_thumbnail,
    export_image,
    render_export,
)

__all__ = [
    'ExportSettings',
    'ExportedImage',
    'encode_image',
    'encode_with_fallback',
    'encode_thumbnail',
    'export_image',
    'render_export',
]
