"""Distributed lock on top of conditional writes to an attribute store."""

from .core import (
    LOCK_TIME,
    AttributeStore,
    ConditionFailed,
    InMemoryAttributeStore,
    LockSettings,
    SdbLock,
    StoreError,
    create_client,
)

__all__ = [
    "__version__",
    "LOCK_TIME",
    "AttributeStore",
    "ConditionFailed",
    "InMemoryAttributeStore",
    "LockSettings",
    "SdbLock",
    "StoreError",
    "create_client",
]

__version__ = "0.1.0"
