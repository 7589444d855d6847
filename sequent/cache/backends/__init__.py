"""
Sequent cache backends: storage implementations.
"""

from .memory import MemoryBackend
from .redis import RedisBackend
from .null import NullBackend

__all__ = [
    "MemoryBackend",
    "RedisBackend",
    "NullBackend",
]
