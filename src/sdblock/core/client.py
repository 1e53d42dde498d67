"""Lease lock built on the conditional writes of an attribute store.

Usage::

    lock = SdbLock(store, "my_app_lock")

    if await lock.try_lock("abc"):
        try:
            ...
        finally:
            await lock.unlock("abc")

    # Unlocks after the work finishes, whether it fails or not.
    executed = await lock.try_lock("abc", work=do_work)

    async with lock.hold("abc") as acquired:
        ...

    # Reap leases older than 60 seconds left by crashed holders.
    await lock.unlock_old(60)

The presence of the ``lock_time`` attribute on the resource's item is the
lock. Acquisition writes it only if absent; reaping deletes it only if it
still holds the value the reaper observed.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import inspect
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from sdblock.utils.logging import get_logger

from .locks import AsyncLock, ExtraAttributes, LockManager
from .store import AttributeStore, Condition, ConditionFailed, Predicate
from .timecode import decode_time, encode_time


# Attribute name used to save the locked time
LOCK_TIME = "lock_time"

INITIAL_WAIT_SECS = 0.5

# Max wait between attempts in lock()
MAX_WAIT_SECS = 2.0

Work = Callable[[], Any]
Age = Union[int, float, dt.timedelta]

logger = get_logger("SdbLock")


def _age_seconds(age: Age) -> float:
    seconds = age.total_seconds() if isinstance(age, dt.timedelta) else float(age)
    if seconds < 0:
        raise ValueError(f"Age must not be negative: {age!r}")
    return seconds


def _extra_attributes(attributes: Optional[ExtraAttributes]) -> Dict[str, str]:
    if attributes is None:
        return {}
    if isinstance(attributes, Mapping):
        return dict(attributes)
    extra: Dict[str, str] = {}
    for pair in attributes:
        if not isinstance(pair, (tuple, list)) or len(pair) != 2:
            raise ValueError(f"Additional attributes must be (name, value) pairs, got {pair!r}")
        name, value = pair
        extra[name] = value
    return extra


def _check_resource(resource: str) -> None:
    if not resource:
        raise ValueError("Resource name must not be empty")


class _HeldLease:
    def __init__(self, client: "SdbLock", resource: str, attributes: Optional[ExtraAttributes], blocking: bool) -> None:
        self._client = client
        self._resource = resource
        self._attributes = attributes
        self._blocking = blocking
        self._acquired = False

    async def __aenter__(self) -> bool:
        if self._blocking:
            self._acquired = await self._client.lock(self._resource, self._attributes)
        else:
            self._acquired = await self._client.try_lock(self._resource, self._attributes)
        return self._acquired

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._acquired:
            return
        try:
            await self._client.unlock(self._resource)
        finally:
            self._acquired = False


class SdbLock(LockManager):
    """Stateless lock client for one domain of an attribute store."""

    def __init__(
        self,
        store: AttributeStore,
        domain: str,
        *,
        initial_wait: float = INITIAL_WAIT_SECS,
        max_wait: float = MAX_WAIT_SECS,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if initial_wait <= 0 or max_wait < initial_wait:
            raise ValueError("Waits must satisfy 0 < initial_wait <= max_wait")
        self._store = store
        self._domain = domain
        self._initial_wait = initial_wait
        self._max_wait = max_wait
        self._clock = clock
        self._sleep = sleep

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def store(self) -> AttributeStore:
        return self._store

    async def try_lock(
        self,
        resource: str,
        attributes: Optional[ExtraAttributes] = None,
        work: Optional[Work] = None,
    ) -> bool:
        """Acquire ``resource`` if nobody holds it.

        With ``work``, run it once acquired and unlock afterwards.
        Returns whether the lease was acquired.
        """
        _check_resource(resource)
        values = self._lease_attributes(attributes)
        try:
            await self._store.put(self._domain, resource, values, Condition.absent(LOCK_TIME))
        except ConditionFailed:
            logger.debug("Lock %s/%s is held elsewhere", self._domain, resource)
            return False
        logger.debug("Locked %s/%s at %s", self._domain, resource, values[LOCK_TIME])
        if work is not None:
            await self._run_scoped(resource, work)
        return True

    async def lock(
        self,
        resource: str,
        attributes: Optional[ExtraAttributes] = None,
        work: Optional[Work] = None,
    ) -> bool:
        """Acquire ``resource``, waiting as long as it takes.

        Attempts back off exponentially up to ``max_wait`` seconds apart.
        There is no timeout; wrap the call in ``asyncio.wait_for`` for one.
        """
        wait = self._initial_wait
        while not await self.try_lock(resource, attributes):
            await self._sleep(wait)
            wait = min(wait * 2, self._max_wait)
        if work is not None:
            await self._run_scoped(resource, work)
        return True

    async def unlock(self, resource: str, expected_lock_time: Optional[str] = None) -> bool:
        """Release ``resource`` and every attribute stored with its lease.

        Without ``expected_lock_time`` the lease is removed whoever holds it.
        With it, only a lease carrying exactly that value is removed.
        """
        _check_resource(resource)
        condition = None
        if expected_lock_time is not None:
            condition = Condition.equals(LOCK_TIME, expected_lock_time)
        try:
            await self._store.delete(self._domain, resource, None, condition)
        except ConditionFailed:
            logger.debug("Lease on %s/%s changed; not unlocked", self._domain, resource)
            return False
        return True

    async def lock_value(self, resource: str) -> Optional[str]:
        """Encoded lease value of ``resource``, read consistently."""
        _check_resource(resource)
        attributes = await self._store.get(self._domain, resource)
        values = attributes.get(LOCK_TIME) or []
        return values[0] if values else None

    async def locked_time(self, resource: str) -> Optional[dt.datetime]:
        """Time ``resource`` was locked, or None if it is not locked."""
        value = await self.lock_value(resource)
        return decode_time(value) if value is not None else None

    async def locked_resources(self, age: Optional[Age] = None) -> List[str]:
        """Locked resources, limited to those locked over ``age`` ago if given.

        Results come from the store's query path and may be stale.
        """
        if age is None:
            predicate = Predicate.exists(LOCK_TIME)
        else:
            predicate = Predicate.less_than(LOCK_TIME, self._threshold(age))
        return await self._store.query(self._domain, predicate)

    async def unlock_old(self, age: Age) -> List[str]:
        """Unlock resources locked more than ``age`` ago.

        Recovers leases left behind by holders that died before unlocking.
        Each candidate is re-read and deleted only if its lease still has
        the stale value, so a lease taken in the meantime survives.
        """
        unlocked: List[str] = []
        for resource in await self.locked_resources(age):
            value = await self.lock_value(resource)
            if value is None or value >= self._threshold(age):
                continue
            if await self.unlock(resource, value):
                unlocked.append(resource)
            else:
                logger.warning("Lease on %s/%s changed while reaping", self._domain, resource)
        if unlocked:
            logger.info("Unlocked %d stale lease(s) in %s: %s", len(unlocked), self._domain, ", ".join(unlocked))
        return unlocked

    def hold(
        self,
        resource: str,
        attributes: Optional[ExtraAttributes] = None,
        *,
        blocking: bool = True,
    ) -> AsyncLock:
        return _HeldLease(self, resource, attributes, blocking)

    async def close(self) -> None:
        await self._store.close()

    def _threshold(self, age: Age) -> str:
        return encode_time(max(self._clock() - _age_seconds(age), 0))

    def _lease_attributes(self, attributes: Optional[ExtraAttributes]) -> Dict[str, str]:
        extra = _extra_attributes(attributes)
        if LOCK_TIME in extra:
            raise ValueError(f"{LOCK_TIME!r} is reserved for the lease")
        return {LOCK_TIME: encode_time(self._clock()), **extra}

    async def _run_scoped(self, resource: str, work: Work) -> None:
        try:
            result = work()
            if inspect.isawaitable(result):
                await result
        finally:
            await self.unlock(resource)
