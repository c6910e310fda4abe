"""
Tests for the editing session.
"""

import asyncio
import logging
from io import BytesIO
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest
import requests
from PIL import Image

from photoedit.config import get_default_config, update_config_value
from photoedit.errors import DecodeFailure, EncodeFailure, InvalidAdjustment, RenderFailure
from photoedit.interaction.crop_controller import Handle, InteractionState, Region
from photoedit.preview.models import EditorTool
from photoedit.processing.adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS
from photoedit.processing.geometry.crop import CropBox, DEFAULT_CROP
from photoedit.session import EditingSession, SessionStatus
from photoedit.utils.async_processing import AsyncProcessor


@pytest.fixture
def session(png_bytes):
    sess = EditingSession(png_bytes)
    result = sess.load()
    assert result.ok
    yield sess
    sess.close()


class TestLoading:
    """Test opening sources."""

    def test_load_from_bytes(self, png_bytes, gradient_image):
        """Bytes decode into a read-only original."""
        sess = EditingSession(png_bytes)
        assert sess.status is SessionStatus.NOT_READY

        result = sess.load()
        assert result.ok
        assert result.size == (64, 48)
        assert sess.is_ready
        np.testing.assert_array_equal(sess.original, gradient_image)
        assert not sess.original.flags.writeable

    def test_load_from_path(self, image_file):
        """Filesystem paths are read directly."""
        sess = EditingSession(str(image_file))
        assert sess.load().size == (64, 48)

    def test_load_from_url(self, png_bytes):
        """URLs are fetched with requests and the configured timeout."""
        response = MagicMock()
        response.content = png_bytes
        with patch('photoedit.io.loader.requests.get', return_value=response) as mock_get:
            result = EditingSession('https://cdn.example.com/photo.png').load()

        assert result.ok
        mock_get.assert_called_once_with('https://cdn.example.com/photo.png', timeout=30.0)
        response.raise_for_status.assert_called_once()

    def test_http_error_is_decode_failure(self):
        """HTTP errors become a DecodeFailure result."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        with patch('photoedit.io.loader.requests.get', return_value=response):
            sess = EditingSession('http://cdn.example.com/missing.jpg')
            result = sess.load()

        assert not result.ok
        assert isinstance(result.error, DecodeFailure)
        assert sess.status is SessionStatus.FAILED

    def test_corrupt_bytes(self):
        """Undecodable bytes leave the session failed with no buffer."""
        sess = EditingSession(b'definitely not an image')
        result = sess.load()

        assert not result.ok
        assert isinstance(result.error, DecodeFailure)
        assert sess.status is SessionStatus.FAILED
        assert sess.original is None
        assert sess.scheduler is None

    def test_missing_file(self, tmp_path):
        """A missing file is a DecodeFailure result."""
        result = EditingSession(str(tmp_path / "nope.jpg")).load()
        assert isinstance(result.error, DecodeFailure)

    def test_exif_orientation_is_applied(self):
        """EXIF orientation is applied on load."""
        img = Image.new('RGB', (40, 20), (10, 20, 30))
        exif = img.getexif()
        exif[0x0112] = 6  # rotate 90 CW on display
        output = BytesIO()
        img.save(output, format='JPEG', exif=exif.tobytes())

        result = EditingSession(output.getvalue()).load()
        assert result.size == (20, 40)

    def test_rgba_source_keeps_alpha(self):
        """Sources with alpha load as RGBA."""
        img = Image.new('RGBA', (8, 8), (255, 0, 0, 128))
        output = BytesIO()
        img.save(output, format='PNG')

        sess = EditingSession(output.getvalue())
        sess.load()
        assert sess.original.shape == (8, 8, 4)

    def test_load_async(self, png_bytes):
        """load_async runs the decode on the thread pool."""
        sess = EditingSession(png_bytes)
        processor = AsyncProcessor(max_workers=1)
        try:
            result = asyncio.run(sess.load_async(processor))
        finally:
            processor.shutdown()
        assert result.ok


class TestEditing:
    """Test state changes and preview requests."""

    def test_initial_state(self, session):
        """A new session starts from the defaults."""
        state = session.state
        assert state.adjustments == DEFAULT_ADJUSTMENTS
        assert state.crop == DEFAULT_CROP
        assert state.preset_id is None
        assert state.tool is EditorTool.ADJUST

    def test_set_adjustment_clamps(self, session):
        """Adjustment values are clamped to their range."""
        model = session.set_adjustment('brightness', 500)
        assert model.brightness == 100.0

    def test_unknown_adjustment(self, session):
        """Unknown adjustment names raise InvalidAdjustment."""
        with pytest.raises(InvalidAdjustment):
            session.set_adjustment('glow', 10)

    def test_edits_coalesce_into_one_render(self, session):
        """Edits between ticks produce one render."""
        session.tick()
        for value in range(0, 50, 5):
            session.set_adjustment('contrast', value)
        assert session.scheduler.pending

        frame = session.tick()
        assert frame.state.adjustments.contrast == 45
        assert session.tick() is None
        assert session.scheduler.stats.renders == 2

    def test_preset_selection_rules(self, session):
        """Selecting toggles and a new preset resets intensity."""
        assert session.select_preset('vivid-punch') == 'vivid-punch'
        session.set_preset_intensity(40)
        assert session.preset_intensity == 40

        assert session.select_preset('bw-classic') == 'bw-classic'
        assert session.preset_intensity == 100

        assert session.select_preset('bw-classic') is None

    def test_unknown_preset_is_ignored(self, session, caplog):
        """Unknown preset ids are logged and ignored."""
        session.select_preset('warm-golden')
        with caplog.at_level(logging.WARNING):
            assert session.select_preset('not-a-preset') == 'warm-golden'
        assert 'not-a-preset' in caplog.text

    def test_intensity_is_clamped(self, session):
        """Preset intensity is clamped to 0-100."""
        assert session.set_preset_intensity(150) == 100
        assert session.set_preset_intensity(-5) == 0

    def test_effective_adjustments(self, session):
        """Effective adjustments combine preset and manual values."""
        session.select_preset('vivid-punch')
        session.set_preset_intensity(50)
        session.set_adjustment('contrast', -10)

        effective = session.effective_adjustments()
        assert effective.contrast == -10
        assert effective.saturation == 15
        assert session.adjustments.saturation == 0

    def test_rotation_and_flips(self, session):
        """Rotation and flips update the crop box."""
        session.rotate(90)
        session.rotate(90)
        session.rotate(-90)
        session.flip_horizontal()
        session.set_straighten(12)
        crop = session.crop
        assert crop.rotation == 90
        assert crop.straighten == 12
        assert crop.total_rotation == 102
        assert crop.flip_horizontal

    def test_pointer_drag_updates_crop(self, session):
        """Pointer drags move the crop and request a preview."""
        session.set_crop(CropBox(x=10, y=10, width=50, height=50))
        session.tick()

        assert session.pointer_down(30, 30) is InteractionState.DRAGGING
        session.pointer_move(40, 35)
        session.pointer_up()

        assert session.crop.rect == pytest.approx((20.0, 15.0, 50.0, 50.0))
        assert session.scheduler.pending

    def test_control_drag_does_not_move_crop(self, session):
        """Drags that start on the controls leave the crop alone."""
        session.set_crop(CropBox(x=10, y=10, width=50, height=50))
        session.pointer_down(30, 30, region=Region.CONTROLS)
        session.pointer_move(90, 90)
        session.pointer_up()
        assert session.crop.rect == pytest.approx((10.0, 10.0, 50.0, 50.0))

    def test_aspect_ratio(self, session):
        """Locking a ratio refits the crop box."""
        box = session.set_aspect_ratio('1:1')
        assert box.width / 100 * 64 == pytest.approx(box.height / 100 * 48)
        assert session.aspect_ratio == '1:1'

    def test_zoom_is_clamped_and_display_only(self, session):
        """Zoom is clamped and not part of the edit state."""
        before = session.state
        assert session.zoom_in() == pytest.approx(1.1)
        assert session.set_zoom(10) == 3.0
        assert session.set_zoom(0.01) == 0.5
        assert session.zoom_out() == 0.5
        assert session.state == before

    def test_crop_tool_previews_full_frame(self, session):
        """With the crop tool active the preview is uncropped."""
        session.set_crop(CropBox(width=50, height=50))
        assert session.tick().size == (32, 24)

        session.set_tool('crop')
        assert session.tool is EditorTool.CROP
        assert session.tick().size == (64, 48)

    def test_reset_is_idempotent(self, session):
        """Resetting twice gives the same state as resetting once."""
        session.set_adjustments({'brightness': 30, 'redChannel': -20})
        session.select_preset('cine-moody')
        session.rotate(270)
        session.flip_vertical()
        session.set_aspect_ratio('16:9')
        session.set_zoom(2.5)

        for _ in range(2):
            state = session.reset()
            assert state.adjustments == DEFAULT_ADJUSTMENTS
            assert state.crop == DEFAULT_CROP
            assert state.preset_id is None
            assert state.preset_intensity == 100
            assert session.zoom == 1.0
            assert session.aspect_ratio == 'free'

    def test_thumbnail(self, session):
        """The thumbnail is a JPEG."""
        data = session.thumbnail()
        assert data[:2] == b'\xff\xd8'

    def test_threaded_session(self, png_bytes):
        """Threaded sessions deliver frames through on_frame."""
        frames = []
        sess = EditingSession(png_bytes, on_frame=frames.append, threaded=True)
        sess.load()
        assert sess.scheduler is None

        sess.set_adjustment('brightness', 20)
        sess.renderer.shutdown(wait=True)

        assert frames
        assert frames[-1].state.adjustments.brightness == 20
        sess.close()

    def test_reload_shuts_down_previous_renderer(self, png_bytes):
        """Loading again replaces the worker pool instead of leaking it."""
        sess = EditingSession(png_bytes, threaded=True)
        sess.load()
        previous = sess.renderer

        assert sess.load().ok
        assert sess.renderer is not previous
        with pytest.raises(RuntimeError):
            previous.submit(sess.state)
        sess.close()

    def test_reload_replaces_scheduler(self, session):
        """A reload starts from a fresh scheduler."""
        previous = session.scheduler
        assert session.load().ok
        assert session.scheduler is not previous
        assert not previous.pending

    def test_crop_min_size_from_config(self, png_bytes):
        """crop.min_size in the config limits interactive resizes."""
        config = get_default_config()
        update_config_value(config, 'crop.min_size', 25)
        sess = EditingSession(png_bytes, config=config)
        sess.load()

        sess.pointer_down(100, 100, handle=Handle.SE)
        box = sess.pointer_move(0, 0)
        assert (box.width, box.height) == (25.0, 25.0)
        sess.close()


class TestExport:
    """Test session export results."""

    def test_export(self, session, png_bytes):
        """Export carries the source reference and the rotated size."""
        session.rotate(90)
        result = session.export()

        assert result.ok
        assert result.source is png_bytes
        assert (result.width, result.height) == (48, 64)
        assert result.format in ('webp', 'jpeg')
        img = Image.open(BytesIO(result.data))
        assert img.size == (48, 64)

    def test_export_does_not_touch_original(self, session, gradient_image):
        """Export leaves the original buffer unchanged."""
        session.set_adjustment('brightness', 80)
        session.export()
        np.testing.assert_array_equal(session.original, gradient_image)

    def test_export_before_load(self, png_bytes):
        """Exporting before load is a failure result."""
        result = EditingSession(png_bytes).export()
        assert not result.ok
        assert result.source is png_bytes

    def test_export_after_failed_load(self):
        """The load error is reported by a later export."""
        sess = EditingSession(b'garbage')
        sess.load()
        result = sess.export()
        assert isinstance(result.error, DecodeFailure)

    def test_encode_failure_is_a_result(self, session):
        """Encoder failures come back as a result and the session survives."""
        with patch('photoedit.export.exporter.encode_image',
                   side_effect=EncodeFailure("no encoder", format='jpeg')):
            result = session.export()
        assert not result.ok
        assert isinstance(result.error, EncodeFailure)
        assert session.is_ready

    def test_render_failure_is_a_result(self, session):
        """OpenCV errors during the full-resolution render do not escape export()."""
        with patch('photoedit.export.exporter.apply_crop_transform',
                   side_effect=cv2.error("warpAffine: output too large")):
            result = session.export()
        assert not result.ok
        assert isinstance(result.error, RenderFailure)
        assert result.source is session.source
        assert session.is_ready

    def test_export_async(self, session):
        """export_async returns the same result type."""
        processor = AsyncProcessor(max_workers=1)
        try:
            result = asyncio.run(session.export_async(processor=processor))
        finally:
            processor.shutdown()
        assert result.ok
