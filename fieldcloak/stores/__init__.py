"""
Record stores for the Model integration layer.
Each store implements the same query/update surface over one backend.
"""

from fieldcloak.stores.base import RecordStore
from fieldcloak.stores.memory import MemoryStore

__all__ = [
    "RecordStore",
    "MemoryStore",
]
