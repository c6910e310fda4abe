"""
Pointer-driven crop box editing.

The controller owns the crop rectangle while the operator drags or resizes
it. It knows nothing about rendering: coordinates come in as percent of the
displayed image and the result is a CropBox.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple
import logging

from photoedit.errors import InvalidCrop
from photoedit.processing.geometry.crop import (
    CropBox, DEFAULT_CROP, MIN_CROP_SIZE, ASPECT_MARGIN,
    fit_aspect_ratio, get_aspect_ratio_value
)

logger = logging.getLogger(__name__)

HANDLE_TOLERANCE = 3.0  # percent


class InteractionState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class Handle(Enum):
    """Crop box corner handles."""
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"

    @property
    def east(self) -> bool:
        return self in (Handle.NE, Handle.SE)

    @property
    def south(self) -> bool:
        return self in (Handle.SW, Handle.SE)


class PointerCapture(Enum):
    """Who currently owns pointer input."""
    NONE = "none"
    CROP_DRAG = "crop_drag"
    CONTROL_PANEL = "control_panel"


class Region(Enum):
    """Where a pointer-down landed."""
    CANVAS = "canvas"
    CONTROLS = "controls"


@dataclass(frozen=True)
class GestureStart:
    """Pointer position and crop box captured at pointer-down."""
    x: float
    y: float
    box: CropBox


class CropController:
    """
    State machine for moving and resizing the crop box.

    States: idle, dragging, resizing(handle). Pointer-downs on the control
    panel take the CONTROL_PANEL capture so slider drags never reach the box.
    """

    def __init__(self, image_size: Tuple[int, int] = (1, 1),
                 crop: CropBox = DEFAULT_CROP,
                 handle_tolerance: float = HANDLE_TOLERANCE,
                 aspect_margin: float = ASPECT_MARGIN,
                 min_size: float = MIN_CROP_SIZE):
        self.image_width, self.image_height = image_size
        self.handle_tolerance = handle_tolerance
        self.aspect_margin = aspect_margin
        # CropBox enforces MIN_CROP_SIZE on its own; the configured floor can only raise it
        self.min_size = min(100.0, max(MIN_CROP_SIZE, float(min_size)))

        self._box = crop
        self._state = InteractionState.IDLE
        self._handle: Optional[Handle] = None
        self._capture = PointerCapture.NONE
        self._gesture: Optional[GestureStart] = None
        self._aspect_name = 'free'

    # ------------------------------------------------------------------
    # State

    @property
    def box(self) -> CropBox:
        return self._box

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def handle(self) -> Optional[Handle]:
        return self._handle

    @property
    def capture(self) -> PointerCapture:
        return self._capture

    @property
    def aspect_ratio(self) -> str:
        return self._aspect_name

    @property
    def image_aspect(self) -> float:
        return self.image_width / self.image_height

    def set_image_size(self, width: int, height: int) -> None:
        self.image_width, self.image_height = width, height

    def set_box(self, box: CropBox) -> CropBox:
        """Replace the crop box; the CropBox constructor enforces bounds."""
        self._box = box
        return self._box

    def reset(self) -> CropBox:
        self._cancel_gesture()
        self._aspect_name = 'free'
        self._box = DEFAULT_CROP
        return self._box

    # ------------------------------------------------------------------
    # Aspect ratio

    def set_aspect_ratio(self, name: str) -> CropBox:
        """
        Lock (or unlock with 'free') the aspect ratio.

        A locked ratio immediately recenters the box to the largest fitting
        box with that ratio. Rotation and flips are kept.
        """
        ratio = get_aspect_ratio_value(name)
        self._aspect_name = name
        if ratio is None:
            return self._box

        x, y, width, height = fit_aspect_ratio(
            ratio, self.image_width, self.image_height, self.aspect_margin
        )
        self._box = self._box.with_rect(x, y, width, height)
        logger.debug(f"Aspect ratio {name}: crop box {self._box.rect}")
        return self._box

    def _ratio_value(self) -> Optional[float]:
        return get_aspect_ratio_value(self._aspect_name)

    # ------------------------------------------------------------------
    # Pointer events

    def hit_test(self, x: float, y: float) -> Tuple[Optional[Handle], bool]:
        """Return (handle under pointer, whether the pointer is inside the box)."""
        box = self._box
        corners = {
            Handle.NW: (box.x, box.y),
            Handle.NE: (box.x + box.width, box.y),
            Handle.SW: (box.x, box.y + box.height),
            Handle.SE: (box.x + box.width, box.y + box.height),
        }
        for handle, (cx, cy) in corners.items():
            if abs(x - cx) <= self.handle_tolerance and abs(y - cy) <= self.handle_tolerance:
                return handle, True

        inside = box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height
        return None, inside

    def pointer_down(self, x: float, y: float, region: Region = Region.CANVAS,
                     handle: Optional[Handle] = None) -> InteractionState:
        """
        Start a gesture.

        Args:
            x, y: Pointer position in percent of the displayed image
            region: CONTROLS when the press landed on a slider or button
            handle: Explicit handle when the UI already knows it was pressed

        Returns:
            The new interaction state
        """
        if self._capture is not PointerCapture.NONE:
            return self._state

        if region is Region.CONTROLS:
            self._capture = PointerCapture.CONTROL_PANEL
            return self._state

        if handle is None:
            handle, inside = self.hit_test(x, y)
        else:
            inside = True

        if handle is not None:
            self._state = InteractionState.RESIZING
            self._handle = Handle(handle)
        elif inside:
            self._state = InteractionState.DRAGGING
        else:
            return self._state

        self._capture = PointerCapture.CROP_DRAG
        self._gesture = GestureStart(x=x, y=y, box=self._box)
        return self._state

    def pointer_move(self, x: float, y: float) -> CropBox:
        """Follow the pointer; ignored unless the crop owns the pointer."""
        if self._capture is not PointerCapture.CROP_DRAG or self._gesture is None:
            return self._box

        dx = x - self._gesture.x
        dy = y - self._gesture.y

        if self._state is InteractionState.DRAGGING:
            self._box = self._drag(self._gesture.box, dx, dy)
        elif self._state is InteractionState.RESIZING:
            self._box = self._resize(self._gesture.box, self._handle, dx, dy)
        return self._box

    def pointer_up(self) -> InteractionState:
        self._cancel_gesture()
        return self._state

    def _cancel_gesture(self) -> None:
        self._state = InteractionState.IDLE
        self._handle = None
        self._capture = PointerCapture.NONE
        self._gesture = None

    # ------------------------------------------------------------------
    # Geometry

    @staticmethod
    def _drag(start: CropBox, dx: float, dy: float) -> CropBox:
        x = max(0.0, min(100.0 - start.width, start.x + dx))
        y = max(0.0, min(100.0 - start.height, start.y + dy))
        return replace(start, x=x, y=y)

    def _resize(self, start: CropBox, handle: Handle, dx: float, dy: float) -> CropBox:
        # The corner opposite the handle stays pinned
        anchor_x = start.x if handle.east else start.x + start.width
        anchor_y = start.y if handle.south else start.y + start.height
        available_w = 100.0 - anchor_x if handle.east else anchor_x
        available_h = 100.0 - anchor_y if handle.south else anchor_y

        proposed_w = start.width + (dx if handle.east else -dx)
        proposed_h = start.height + (dy if handle.south else -dy)

        width = height = None
        ratio = self._ratio_value()
        if ratio:
            # Height follows width; limit width so the locked box fits
            height_per_width = self.image_aspect / ratio
            min_w = max(self.min_size, self.min_size / height_per_width)
            max_w = min(available_w, available_h / height_per_width)
            if min_w <= max_w:
                width = max(min_w, min(max_w, proposed_w))
                height = width * height_per_width

        if width is None:
            width = max(self.min_size, min(available_w, proposed_w))
            height = max(self.min_size, min(available_h, proposed_h))

        x = anchor_x if handle.east else anchor_x - width
        y = anchor_y if handle.south else anchor_y - height
        return start.with_rect(x, y, width, height)
