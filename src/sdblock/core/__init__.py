"""Core lock protocol and attribute store adapters."""

from .client import LOCK_TIME, SdbLock
from .factory import build_store, create_client
from .locks import AsyncLock, LockManager
from .settings import LockSettings
from .store import AttributeStore, Condition, ConditionFailed, Predicate, StoreError
from .store_memory import InMemoryAttributeStore
from .timecode import decode_time, encode_time

__all__ = [
    "LOCK_TIME",
    "SdbLock",
    "build_store",
    "create_client",
    "AsyncLock",
    "LockManager",
    "LockSettings",
    "AttributeStore",
    "Condition",
    "ConditionFailed",
    "Predicate",
    "StoreError",
    "InMemoryAttributeStore",
    "decode_time",
    "encode_time",
]
