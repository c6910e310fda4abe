"""
Editing session: the single owner of one image's edit state.

A session is created when an image is opened for editing, mutated only
through its methods, and discarded on cancel or converted to an encoded
blob on export. It is never serialized.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import numpy as np

from .config import get_config_value, get_default_config
from .errors import (
    DecodeFailure, EncodeFailure, ExportResult, LoadResult, PhotoEditError, RenderFailure
)
from .export.exporter import ExportSettings, encode_thumbnail, export_image
from .interaction.crop_controller import CropController, Handle, InteractionState, Region
from .io.loader import DEFAULT_TIMEOUT, SourceRef, describe_source, load_image
from .preview.models import EditState, EditorTool, PreviewConfig, PreviewFrame
from .preview.preview_processor import PreviewProcessor, effective_adjustments
from .preview.scheduler import PreviewScheduler
from .preview.threading_manager import LatestWinsRenderer
from .processing.adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS
from .processing.geometry.crop import CropBox
from .processing.presets import clamp_intensity, get_preset_by_id
from .utils.async_processing import AsyncProcessor, get_async_processor
from .utils.logging import StructuredLogger

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    NOT_READY = "not_ready"
    READY = "ready"
    FAILED = "failed"


class EditingSession:
    """
    Non-destructive editing of one source image.

    Edits are cheap state changes; each one asks the preview scheduler for a
    new frame. The host drives rendering by calling ``tick()`` once per
    display refresh, or passes ``threaded=True`` to render on a worker pool
    where stale results are discarded.
    """

    def __init__(self, source: SourceRef, config: Optional[Dict[str, Any]] = None,
                 on_frame: Optional[Callable[[PreviewFrame], None]] = None,
                 threaded: bool = False):
        self.source = source
        self.config = config or get_default_config()
        self.preview_config = PreviewConfig.from_config(self.config)
        self.export_settings = ExportSettings.from_config(self.config)
        self.fetch_timeout = float(get_config_value(self.config, 'fetch.timeout', DEFAULT_TIMEOUT))

        self.zoom_min = float(get_config_value(self.config, 'zoom.min', 0.5))
        self.zoom_max = float(get_config_value(self.config, 'zoom.max', 3.0))
        self.zoom_step = float(get_config_value(self.config, 'zoom.step', 0.1))

        self._on_frame = on_frame
        self._threaded = threaded
        self._log = StructuredLogger(__name__, {'source': describe_source(source)})

        self.status = SessionStatus.NOT_READY
        self.error: Optional[PhotoEditError] = None
        self._original: Optional[np.ndarray] = None
        self._processor: Optional[PreviewProcessor] = None
        self._scheduler: Optional[PreviewScheduler] = None
        self._renderer: Optional[LatestWinsRenderer] = None

        self._crop = CropController(
            handle_tolerance=float(get_config_value(self.config, 'crop.handle_tolerance', 3.0)),
            aspect_margin=float(get_config_value(self.config, 'crop.aspect_margin', 80.0)),
            min_size=float(get_config_value(self.config, 'crop.min_size', 10.0)),
        )
        self._adjustments = DEFAULT_ADJUSTMENTS
        self._preset_id: Optional[str] = None
        self._preset_intensity = 100.0
        self._zoom = 1.0
        self._tool = EditorTool.ADJUST

    # ------------------------------------------------------------------
    # Loading

    @property
    def is_ready(self) -> bool:
        return self.status is SessionStatus.READY

    @property
    def original(self) -> Optional[np.ndarray]:
        """Read-only full-resolution buffer, None until loaded."""
        return self._original

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        if self._original is None:
            return None
        return self._original.shape[1], self._original.shape[0]

    def load(self) -> LoadResult:
        """
        Fetch and decode the source.

        Returns:
            LoadResult with the image size, or the DecodeFailure. A failed
            load leaves the session without any pixel buffer.
        """
        try:
            buffer = load_image(self.source, timeout=self.fetch_timeout)
        except DecodeFailure as e:
            self.status = SessionStatus.FAILED
            self.error = e
            self._log.error("Failed to load source", error=str(e))
            return LoadResult.failure(e)

        self._attach(buffer)
        height, width = buffer.shape[:2]
        return LoadResult.success(width, height)

    async def load_async(self, processor: Optional[AsyncProcessor] = None) -> LoadResult:
        processor = processor or get_async_processor()
        return await processor.run_in_thread(self.load)

    def _attach(self, buffer: np.ndarray) -> None:
        buffer.flags.writeable = False
        self._original = buffer
        height, width = buffer.shape[:2]

        self._crop.set_image_size(width, height)
        self._stop_preview()
        self._processor = PreviewProcessor(buffer, self.preview_config)
        if self._threaded:
            self._renderer = LatestWinsRenderer(self._processor.render, self._on_frame, self.preview_config)
        else:
            self._scheduler = PreviewScheduler(self._processor.render, self._on_frame)

        self.status = SessionStatus.READY
        self.error = None
        self._log.info("Session ready", width=width, height=height)
        self._request_preview()

    # ------------------------------------------------------------------
    # State

    @property
    def adjustments(self) -> AdjustmentModel:
        """The operator's manual slider values."""
        return self._adjustments

    @property
    def crop(self) -> CropBox:
        return self._crop.box

    @property
    def crop_controller(self) -> CropController:
        return self._crop

    @property
    def preset_id(self) -> Optional[str]:
        return self._preset_id

    @property
    def preset_intensity(self) -> float:
        return self._preset_intensity

    @property
    def aspect_ratio(self) -> str:
        return self._crop.aspect_ratio

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def tool(self) -> EditorTool:
        return self._tool

    @property
    def state(self) -> EditState:
        """Snapshot of everything that affects rendered pixels."""
        return EditState(
            adjustments=self._adjustments,
            crop=self._crop.box,
            preset_id=self._preset_id,
            preset_intensity=self._preset_intensity,
            tool=self._tool,
        )

    def effective_adjustments(self) -> AdjustmentModel:
        return effective_adjustments(self.state)

    # ------------------------------------------------------------------
    # Preview

    @property
    def scheduler(self) -> Optional[PreviewScheduler]:
        return self._scheduler

    @property
    def renderer(self) -> Optional[LatestWinsRenderer]:
        return self._renderer

    @property
    def latest_frame(self) -> Optional[PreviewFrame]:
        if self._renderer is not None:
            return self._renderer.latest_frame
        if self._scheduler is not None:
            return self._scheduler.latest_frame
        return None

    def _request_preview(self) -> None:
        if self._renderer is not None:
            self._renderer.submit(self.state)
        elif self._scheduler is not None:
            self._scheduler.request(self.state)

    def tick(self) -> Optional[PreviewFrame]:
        """Display-refresh callback; renders the latest pending state."""
        if self._scheduler is None:
            return None
        return self._scheduler.tick()

    def thumbnail(self) -> Optional[bytes]:
        """JPEG snapshot of the current preview for a live-preview panel."""
        if self._processor is None:
            return None
        frame = self.latest_frame
        image = frame.image if frame is not None and frame.state == self.state else self._processor.render(self.state)
        return encode_thumbnail(image, self.preview_config.thumbnail_dimension,
                                self.preview_config.thumbnail_quality)

    # ------------------------------------------------------------------
    # Adjustments and presets

    def set_adjustment(self, name: str, value: float) -> AdjustmentModel:
        """
        Set one manual slider. Out-of-range values are clamped.

        Raises:
            InvalidAdjustment: if the name is not an adjustment field
        """
        self._adjustments = self._adjustments.with_value(name, value)
        self._request_preview()
        return self._adjustments

    def set_adjustments(self, values: Mapping[str, float]) -> AdjustmentModel:
        self._adjustments = self._adjustments.with_values(values)
        self._request_preview()
        return self._adjustments

    def select_preset(self, preset_id: Optional[str]) -> Optional[str]:
        """
        Select a preset; selecting the active one again turns it off.

        Returns:
            The active preset id afterwards
        """
        if preset_id is None or preset_id == self._preset_id:
            self._preset_id = None
        elif get_preset_by_id(preset_id) is None:
            logger.warning(f"Ignoring unknown preset: {preset_id}")
            return self._preset_id
        else:
            self._preset_id = preset_id
            self._preset_intensity = 100.0

        self._request_preview()
        return self._preset_id

    def set_preset_intensity(self, intensity: float) -> float:
        self._preset_intensity = clamp_intensity(intensity)
        self._request_preview()
        return self._preset_intensity

    # ------------------------------------------------------------------
    # Crop, rotation and flips

    def set_crop(self, crop: CropBox) -> CropBox:
        box = self._crop.set_box(crop)
        self._request_preview()
        return box

    def set_aspect_ratio(self, name: str) -> CropBox:
        box = self._crop.set_aspect_ratio(name)
        self._request_preview()
        return box

    def rotate(self, degrees: int = 90) -> CropBox:
        """Coarse rotation in quarter turns, e.g. 90 or -90."""
        return self.set_crop(self._crop.box.rotated(degrees))

    def set_straighten(self, degrees: float) -> CropBox:
        return self.set_crop(self._crop.box.with_straighten(degrees))

    def flip_horizontal(self) -> CropBox:
        return self.set_crop(self._crop.box.flipped(horizontal=True))

    def flip_vertical(self) -> CropBox:
        return self.set_crop(self._crop.box.flipped(vertical=True))

    def pointer_down(self, x: float, y: float, region: Region = Region.CANVAS,
                     handle: Optional[Handle] = None) -> InteractionState:
        return self._crop.pointer_down(x, y, region=region, handle=handle)

    def pointer_move(self, x: float, y: float) -> CropBox:
        before = self._crop.box
        box = self._crop.pointer_move(x, y)
        if box != before:
            self._request_preview()
        return box

    def pointer_up(self) -> InteractionState:
        return self._crop.pointer_up()

    # ------------------------------------------------------------------
    # View

    def set_zoom(self, zoom: float) -> float:
        """Display zoom; never affects rendered or exported pixels."""
        self._zoom = round(min(max(float(zoom), self.zoom_min), self.zoom_max), 2)
        return self._zoom

    def zoom_in(self) -> float:
        return self.set_zoom(self._zoom + self.zoom_step)

    def zoom_out(self) -> float:
        return self.set_zoom(self._zoom - self.zoom_step)

    def set_tool(self, tool) -> EditorTool:
        tool = EditorTool(tool)
        if tool is not self._tool:
            self._tool = tool
            self._request_preview()
        return self._tool

    def reset(self) -> EditState:
        """Back to defaults: no adjustments, full-frame crop, no preset, zoom 1."""
        self._adjustments = DEFAULT_ADJUSTMENTS
        self._crop.reset()
        self._preset_id = None
        self._preset_intensity = 100.0
        self._zoom = 1.0
        self._request_preview()
        return self.state

    # ------------------------------------------------------------------
    # Export

    def export(self, settings: Optional[ExportSettings] = None) -> ExportResult:
        """
        Render the current edit at full resolution and encode it.

        Returns:
            ExportResult with the encoded blob and the source reference, or
            the error. Never raises.
        """
        if self._original is None:
            error = self.error or PhotoEditError("Session is not ready")
            return ExportResult.failure(error, source=self.source)

        settings = settings or self.export_settings
        try:
            exported = export_image(self._original, self.effective_adjustments(), self._crop.box, settings)
        except EncodeFailure as e:
            self._log.error("Export failed", error=str(e), format=e.format)
            return ExportResult.failure(e, source=self.source)
        except RenderFailure as e:
            self._log.error("Export render failed", error=str(e))
            return ExportResult.failure(e, source=self.source)

        return ExportResult(
            ok=True,
            data=exported.data,
            width=exported.width,
            height=exported.height,
            format=exported.format,
            mime_type=exported.mime_type,
            source=self.source,
        )

    async def export_async(self, settings: Optional[ExportSettings] = None,
                           processor: Optional[AsyncProcessor] = None) -> ExportResult:
        processor = processor or get_async_processor()
        return await processor.run_in_thread(self.export, settings)

    def _stop_preview(self) -> None:
        if self._renderer is not None:
            self._renderer.shutdown(wait=False)
            self._renderer = None
        if self._scheduler is not None:
            self._scheduler.cancel()
            self._scheduler = None

    def close(self) -> None:
        """Discard the session and stop any preview workers."""
        self._stop_preview()
        self._processor = None
        self._original = None
        self.status = SessionStatus.NOT_READY

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
