"""
Concurrency utilities package.
"""

from .io import get_io_semaphore_stats, io_semaphore, set_io_semaphore_count

__all__ = [
    'io_semaphore',
    'set_io_semaphore_count',
    'get_io_semaphore_stats',
]
