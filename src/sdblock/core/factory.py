"""Build stores and lock clients from settings."""

from __future__ import annotations

from typing import Optional

from sdblock.utils.logging import get_logger

from .client import SdbLock
from .settings import LockSettings
from .store import AttributeStore
from .store_memory import InMemoryAttributeStore


logger = get_logger("SdbLockFactory")


def build_store(settings: LockSettings) -> AttributeStore:
    """Instantiate the backend named by ``settings.backend``."""
    if settings.backend == "memory":
        return InMemoryAttributeStore()
    if settings.backend == "redis":
        from .store_redis import RedisAttributeStore

        return RedisAttributeStore(settings.redis.url, key_prefix=settings.redis.key_prefix)
    from .store_simpledb import SimpleDBAttributeStore

    return SimpleDBAttributeStore(
        region_name=settings.simpledb.region_name,
        endpoint_url=settings.simpledb.endpoint_url,
    )


async def create_client(settings: LockSettings, *, store: Optional[AttributeStore] = None) -> SdbLock:
    """Return a client for ``settings.domain``, creating the domain if configured to."""
    store = store or build_store(settings)
    if settings.create_domain:
        await store.create_domain(settings.domain)
    logger.debug("Lock client ready for %s domain %s", settings.backend, settings.domain)
    return SdbLock(
        store,
        settings.domain,
        initial_wait=settings.initial_wait_seconds,
        max_wait=settings.max_wait_seconds,
    )
