from .base import CONDITIONAL_CHECK_FAILED, EntityStore, ItemList, ReadRequest, StoreError
from .memory import MemoryStore

__all__ = [
    "CONDITIONAL_CHECK_FAILED",
    "EntityStore",
    "ItemList",
    "MemoryStore",
    "ReadRequest",
    "StoreError",
]
