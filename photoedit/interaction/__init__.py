"""
Pointer interaction for PhotoEdit.
"""

from .crop_controller import (
    CropController, InteractionState, Handle, PointerCapture, Region
)

__all__ = [
    'CropController',
    'InteractionState',
    'Handle',
    'PointerCapture',
    'Region',
]
