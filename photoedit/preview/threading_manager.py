"""
Off-thread preview rendering with latest-wins delivery.

Renders run on a small thread pool. Every request gets a monotonically
increasing id; a finished render is delivered only if no newer request was
made in the meantime, otherwise it is discarded.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from .models import EditState, PreviewConfig, PreviewFrame, SchedulerStats

logger = logging.getLogger(__name__)


class LatestWinsRenderer:
    """
    Thread-pool renderer that discards superseded results.

    The render function must be pure with respect to shared pixel memory:
    it reads the read-only preview buffer and returns a new array.
    """

    def __init__(self, render: Callable[[EditState], np.ndarray],
                 on_frame: Optional[Callable[[PreviewFrame], None]] = None,
                 config: Optional[PreviewConfig] = None):
        self.config = config or PreviewConfig()
        self._render = render
        self._on_frame = on_frame

        self.executor = ThreadPoolExecutor(
            max_workers=self.config.max_worker_threads,
            thread_name_prefix="PhotoEdit-Preview"
        )

        self._lock = threading.RLock()
        self._delivery_lock = threading.Lock()
        self._latest_id = 0
        self._last_delivered_id = 0
        self._shutdown = False

        self.latest_frame: Optional[PreviewFrame] = None
        self.stats = SchedulerStats()

        logger.info(f"LatestWinsRenderer initialized with {self.config.max_worker_threads} workers")

    @property
    def latest_id(self) -> int:
        with self._lock:
            return self._latest_id

    def submit(self, state: EditState) -> Future:
        """
        Queue a render of ``state``.

        Returns:
            Future resolving to the delivered PreviewFrame, or None if the
            result was superseded. Render errors propagate through the future.
        """
        if self._shutdown:
            raise RuntimeError("LatestWinsRenderer is shutting down")

        with self._lock:
            self._latest_id += 1
            request_id = self._latest_id
            self.stats.requests += 1

        return self.executor.submit(self._run, request_id, state)

    def _is_latest(self, request_id: int) -> bool:
        with self._lock:
            return request_id == self._latest_id

    def _run(self, request_id: int, state: EditState) -> Optional[PreviewFrame]:
        if not self._is_latest(request_id):
            # Superseded before it started; skip the work entirely
            with self._lock:
                self.stats.dropped += 1
            return None

        start_time = time.time()
        try:
            image = self._render(state)
        except Exception:
            with self._lock:
                self.stats.failures += 1
            logger.error(f"Preview render {request_id} failed", exc_info=True)
            raise
        render_time = time.time() - start_time

        with self._lock:
            self.stats.renders += 1
            self.stats.total_render_time += render_time

        # The latest-id check and on_frame must not be separated by another delivery
        with self._delivery_lock:
            with self._lock:
                if request_id != self._latest_id or request_id <= self._last_delivered_id:
                    self.stats.dropped += 1
                    logger.debug(f"Discarded stale preview {request_id} (latest {self._latest_id})")
                    return None

                frame = PreviewFrame(request_id=request_id, image=image, state=state, render_time=render_time)
                self.latest_frame = frame
                self._last_delivered_id = request_id

            if self._on_frame:
                self._on_frame(frame)
        return frame

    def shutdown(self, wait: bool = True) -> None:
        logger.info("Shutting down LatestWinsRenderer...")
        self._shutdown = True
        self.executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
        return False
