"""
Source image I/O for PhotoEdit.
"""

from .loader import SourceRef, load_image, fetch_bytes, decode_image, is_url

__all__ = [
    'SourceRef',
    'load_image',
    'fetch_bytes',
    'decode_image',
    'is_url',
]
