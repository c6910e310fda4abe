"""
Coalescing preview scheduler.

Edits arrive faster than the display refreshes. Each edit overwrites a
single-slot mailbox and marks the preview dirty; the host calls ``tick()``
once per display refresh and only the latest state is rendered. Superseded
states are dropped, never queued.
"""

import logging
import time
from typing import Callable, Optional

import numpy as np

from .models import EditState, PreviewFrame, SchedulerStats

logger = logging.getLogger(__name__)


class PreviewScheduler:
    """
    Latest-wins preview scheduling for a single-threaded UI loop.

    At most one render is pending at any time. ``request`` never renders;
    ``tick`` renders at most once.
    """

    def __init__(self, render: Callable[[EditState], np.ndarray],
                 on_frame: Optional[Callable[[PreviewFrame], None]] = None):
        self._render = render
        self._on_frame = on_frame

        self._mailbox: Optional[EditState] = None
        self._dirty = False
        self._request_id = 0

        self.latest_frame: Optional[PreviewFrame] = None
        self.stats = SchedulerStats()

    @property
    def pending(self) -> bool:
        """True when a render is scheduled for the next tick."""
        return self._dirty

    @property
    def request_id(self) -> int:
        return self._request_id

    def request(self, state: EditState) -> bool:
        """
        Ask for a preview of ``state``.

        Returns:
            True if this request scheduled a new render, False if it replaced
            a state that was already waiting for the next tick
        """
        self._request_id += 1
        self.stats.requests += 1

        coalesced = self._dirty
        if coalesced:
            self.stats.dropped += 1

        self._mailbox = state
        self._dirty = True
        return not coalesced

    def cancel(self) -> None:
        """Drop the pending render, if any."""
        if self._dirty:
            self.stats.dropped += 1
        self._mailbox = None
        self._dirty = False

    def tick(self) -> Optional[PreviewFrame]:
        """
        Display-refresh callback: render the latest state if one is pending.

        Returns:
            The new frame, or None when nothing was pending or rendering failed
        """
        if not self._dirty:
            return None

        state = self._mailbox
        request_id = self._request_id
        self._mailbox = None
        self._dirty = False

        start_time = time.time()
        try:
            image = self._render(state)
        except Exception as e:
            # The previous frame stays on screen; the next edit retries
            self.stats.failures += 1
            logger.error(f"Preview render {request_id} failed: {e}")
            return None

        render_time = time.time() - start_time
        self.stats.renders += 1
        self.stats.total_render_time += render_time

        frame = PreviewFrame(request_id=request_id, image=image, state=state, render_time=render_time)
        self.latest_frame = frame
        logger.debug(f"Rendered preview {request_id} in {render_time:.3f}s")

        if self._on_frame:
            self._on_frame(frame)
        return frame
