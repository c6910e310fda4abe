"""
Tests for preview scheduling and off-thread rendering.
"""

import threading

import numpy as np
import pytest

from photoedit.preview.models import EditState, EditorTool, PreviewConfig
from photoedit.preview.preview_processor import PreviewProcessor, render_state
from photoedit.preview.scheduler import PreviewScheduler
from photoedit.preview.threading_manager import LatestWinsRenderer
from photoedit.processing.adjustments import AdjustmentModel
from photoedit.processing.geometry.crop import CropBox


def state_with(brightness):
    return EditState(adjustments=AdjustmentModel(brightness=brightness))


class RecordingRender:
    """Render stub that records the states it was asked for."""

    def __init__(self):
        self.states = []

    def __call__(self, state):
        self.states.append(state)
        return np.zeros((4, 4, 3), dtype=np.uint8)


class TestPreviewScheduler:
    """Test single-slot latest-wins scheduling."""

    def test_only_latest_state_is_rendered(self):
        """Several requests before a tick render only the last one."""
        render = RecordingRender()
        scheduler = PreviewScheduler(render)

        assert scheduler.request(state_with(10)) is True
        assert scheduler.request(state_with(20)) is False
        assert scheduler.request(state_with(30)) is False
        assert scheduler.pending

        frame = scheduler.tick()
        assert render.states == [state_with(30)]
        assert frame.state == state_with(30)
        assert frame.request_id == 3
        assert scheduler.stats.dropped == 2
        assert scheduler.stats.renders == 1

    def test_tick_without_request(self):
        """A tick with nothing pending renders nothing."""
        render = RecordingRender()
        scheduler = PreviewScheduler(render)
        assert scheduler.tick() is None

        scheduler.request(state_with(5))
        scheduler.tick()
        assert scheduler.tick() is None
        assert len(render.states) == 1

    def test_on_frame_callback(self):
        """on_frame receives each rendered frame."""
        frames = []
        scheduler = PreviewScheduler(RecordingRender(), on_frame=frames.append)
        scheduler.request(state_with(1))
        frame = scheduler.tick()
        assert frames == [frame]
        assert scheduler.latest_frame is frame

    def test_cancel(self):
        """A cancelled request is never rendered."""
        render = RecordingRender()
        scheduler = PreviewScheduler(render)
        scheduler.request(state_with(1))
        scheduler.cancel()
        assert not scheduler.pending
        assert scheduler.tick() is None
        assert render.states == []

    def test_render_failure_keeps_previous_frame(self):
        """A failing render keeps the last good frame."""
        calls = {'n': 0}

        def flaky(state):
            calls['n'] += 1
            if calls['n'] == 2:
                raise RuntimeError("boom")
            return np.zeros((2, 2, 3), dtype=np.uint8)

        scheduler = PreviewScheduler(flaky)
        scheduler.request(state_with(1))
        first = scheduler.tick()

        scheduler.request(state_with(2))
        assert scheduler.tick() is None
        assert scheduler.latest_frame is first
        assert scheduler.stats.failures == 1


class TestLatestWinsRenderer:
    """Test off-thread rendering that discards stale results."""

    def test_stale_results_are_discarded(self):
        """Only the newest of queued renders is delivered."""
        release = threading.Event()
        frames = []

        def slow_render(state):
            release.wait(timeout=5)
            return np.full((2, 2, 3), int(state.adjustments.brightness), dtype=np.uint8)

        config = PreviewConfig(max_worker_threads=1)
        with LatestWinsRenderer(slow_render, on_frame=frames.append, config=config) as renderer:
            futures = [renderer.submit(state_with(b)) for b in (10, 20, 30)]
            release.set()
            results = [f.result(timeout=5) for f in futures]

        assert results[0] is None
        assert results[1] is None
        assert results[2].request_id == 3
        assert results[2].image[0, 0, 0] == 30
        assert frames == [results[2]]
        assert renderer.stats.dropped == 2

    def test_delivery_order_follows_request_order(self):
        """A newer frame is never handed to on_frame before an older one still being delivered."""
        delivered = []
        first_in_callback = threading.Event()
        second_delivered = threading.Event()

        def on_frame(frame):
            if frame.request_id == 1:
                first_in_callback.set()
                # Give request 2 every chance to overtake this delivery
                second_delivered.wait(timeout=0.5)
            delivered.append(frame.request_id)
            if frame.request_id == 2:
                second_delivered.set()

        config = PreviewConfig(max_worker_threads=2)
        with LatestWinsRenderer(RecordingRender(), on_frame=on_frame, config=config) as renderer:
            first = renderer.submit(state_with(10))
            assert first_in_callback.wait(timeout=5)
            second = renderer.submit(state_with(20))
            first.result(timeout=5)
            second.result(timeout=5)

        assert delivered == [1, 2]
        assert renderer.latest_frame.request_id == renderer.latest_id == 2

    def test_slow_older_render_is_not_delivered_after_newer(self):
        """An older render finishing after a newer delivery is discarded."""
        release = threading.Event()
        delivered = []

        def render(state):
            if state.adjustments.brightness == 10:
                release.wait(timeout=5)
            return np.zeros((2, 2, 3), dtype=np.uint8)

        config = PreviewConfig(max_worker_threads=2)
        with LatestWinsRenderer(render, on_frame=lambda f: delivered.append(f.request_id),
                                config=config) as renderer:
            slow = renderer.submit(state_with(10))
            fast = renderer.submit(state_with(20))
            assert fast.result(timeout=5).request_id == 2
            release.set()
            assert slow.result(timeout=5) is None

        assert delivered == [2]

    def test_single_request_is_delivered(self):
        """A lone request is delivered and kept as latest_frame."""
        with LatestWinsRenderer(RecordingRender()) as renderer:
            frame = renderer.submit(state_with(1)).result(timeout=5)
        assert frame is not None
        assert renderer.latest_frame is frame

    def test_errors_propagate_through_future(self):
        """Render errors surface through the future."""
        def broken(state):
            raise ValueError("bad render")

        with LatestWinsRenderer(broken) as renderer:
            future = renderer.submit(state_with(1))
            with pytest.raises(ValueError):
                future.result(timeout=5)
        assert renderer.stats.failures == 1

    def test_submit_after_shutdown(self):
        """Submitting after shutdown raises."""
        renderer = LatestWinsRenderer(RecordingRender())
        renderer.shutdown()
        with pytest.raises(RuntimeError):
            renderer.submit(state_with(1))


class TestPreviewProcessor:
    """Test rendering against the downsampled buffer."""

    def test_preview_buffer_is_downsampled_and_read_only(self, gradient_image):
        """The preview buffer is capped and read-only."""
        processor = PreviewProcessor(gradient_image, PreviewConfig(max_dimension=32))
        assert processor.preview_buffer.shape == (24, 32, 3)
        assert not processor.preview_buffer.flags.writeable

    def test_render_applies_crop(self, gradient_image):
        """Outside the crop tool the preview is cropped."""
        processor = PreviewProcessor(gradient_image)
        state = EditState(crop=CropBox(width=50, height=50))
        assert processor.render(state).shape == (24, 32, 3)

    def test_crop_tool_shows_full_frame(self, gradient_image):
        """The crop tool previews the uncropped frame, flips included."""
        processor = PreviewProcessor(gradient_image)
        state = EditState(crop=CropBox(width=50, height=50).flipped(horizontal=True), tool=EditorTool.CROP)
        result = processor.render(state)
        np.testing.assert_array_equal(result, gradient_image[:, ::-1])

    def test_render_state_with_preset(self, gradient_image):
        """Preset adjustments reach the preview."""
        state = EditState(preset_id='bw-classic', preset_intensity=100)
        result = render_state(gradient_image, state)
        assert np.all(result[..., 0] == result[..., 1])
        assert np.all(result[..., 1] == result[..., 2])
