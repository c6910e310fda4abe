"""
Utility modules for PhotoEdit
"""

from .logging import StructuredLogger, BatchStats, setup_console_logging
from .async_processing import AsyncProcessor, get_async_processor

__all__ = [
    'StructuredLogger',
    'BatchStats',
    'setup_console_logging',
    'AsyncProcessor',
    'get_async_processor',
]
