"""
Async helpers for PhotoEdit.

Decoding and encoding block for a noticeable time on large sources. These
helpers move such calls onto a thread pool so an asyncio host stays
responsive while the pixel work itself remains synchronous.
"""

import asyncio
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class AsyncProcessor:
    """
    Runs blocking calls in a thread pool from async code.
    """

    def __init__(self, max_workers: Optional[int] = None):
        """
        Initialize the async processor.

        Args:
            max_workers: Maximum thread pool workers (default: executor default)
        """
        self.max_workers = max_workers or min(32, (os.cpu_count() or 1) + 4)
        self.thread_pool = ThreadPoolExecutor(max_workers=self.max_workers,
                                              thread_name_prefix="PhotoEdit-Async")

        self.active_tasks = set()
        self.task_counter = 0
        self._lock = threading.Lock()
        self._shutdown = False

        logger.info(f"AsyncProcessor initialized: {self.max_workers} threads")

    async def run_in_thread(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run a blocking function in the thread pool.

        Args:
            func: Function to execute
            *args: Function arguments
            **kwargs: Function keyword arguments

        Returns:
            Function result
        """
        if self._shutdown:
            raise RuntimeError("AsyncProcessor is shutting down")

        loop = asyncio.get_running_loop()
        task_id = self._get_task_id()
        name = getattr(func, '__name__', repr(func))

        try:
            self.active_tasks.add(task_id)
            logger.debug(f"Starting thread task {task_id}: {name}")

            result = await loop.run_in_executor(self.thread_pool, partial(func, *args, **kwargs))

            logger.debug(f"Completed thread task {task_id}")
            return result

        except Exception as e:
            logger.error(f"Thread task {task_id} failed: {e}")
            raise
        finally:
            self.active_tasks.discard(task_id)

    def _get_task_id(self) -> str:
        with self._lock:
            self.task_counter += 1
            return f"task_{self.task_counter}"

    def shutdown(self, wait: bool = True):
        self._shutdown = True
        self.thread_pool.shutdown(wait=wait)
        logger.info("AsyncProcessor shutdown complete")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'max_workers': self.max_workers,
            'active_tasks': len(self.active_tasks),
            'total_tasks_created': self.task_counter,
            'shutdown': self._shutdown
        }


# Global async processor instance
_processor_instance: Optional[AsyncProcessor] = None
_processor_lock = threading.Lock()


def get_async_processor() -> AsyncProcessor:
    """Get the global async processor instance."""
    global _processor_instance

    if _processor_instance is None:
        with _processor_lock:
            if _processor_instance is None:
                _processor_instance = AsyncProcessor()

    return _processor_instance
