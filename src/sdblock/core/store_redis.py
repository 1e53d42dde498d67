"""Redis-backed attribute store using server-side Lua for conditional writes."""

from __future__ import annotations

import os
import re
from typing import Dict, List, Mapping, Optional, Sequence

from redis.asyncio import Redis

from .store import AttributeStore, Condition, ConditionFailed, Predicate


_CHECK = """
local mode = ARGV[1]
if mode == 'absent' then
    if redis.call('hexists', KEYS[1], ARGV[2]) == 1 then
        return 0
    end
elseif mode == 'equals' then
    if redis.call('hget', KEYS[1], ARGV[2]) ~= ARGV[3] then
        return 0
    end
end
"""

_PUT = _CHECK + """
for i = 4, #ARGV, 2 do
    redis.call('hset', KEYS[1], ARGV[i], ARGV[i + 1])
end
return 1
"""

_DELETE = _CHECK + """
if #ARGV > 3 then
    for i = 4, #ARGV do
        redis.call('hdel', KEYS[1], ARGV[i])
    end
else
    redis.call('del', KEYS[1])
end
return 1
"""

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _condition_args(condition: Optional[Condition]) -> List[str]:
    if condition is None:
        return ["none", "", ""]
    if not condition.exists:
        return ["absent", condition.name, ""]
    return ["equals", condition.name, condition.value or ""]


class RedisAttributeStore(AttributeStore):
    """Stores each item as a hash at ``{prefix}:{len(domain)}:{domain}:{item}``.

    The length keeps domains apart when one domain name is a prefix of
    another, e.g. ``app`` and ``app:jobs``.

    Hash fields hold a single value, so ``get`` returns one-element lists.
    ``query`` walks the domain with SCAN and is not a snapshot.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        key_prefix: str = "sdblock",
        redis: Optional[Redis] = None,
    ) -> None:
        self._redis = redis or Redis.from_url(
            url or os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            decode_responses=True,
        )
        self._prefix = key_prefix

    def _domain_prefix(self, domain: str) -> str:
        return f"{self._prefix}:{len(domain)}:{domain}:"

    def _key(self, domain: str, item: str) -> str:
        return self._domain_prefix(domain) + item

    async def get(self, domain: str, item: str) -> Dict[str, List[str]]:
        fields = await self._redis.hgetall(self._key(domain, item))
        return {name: [value] for name, value in fields.items()}

    async def put(
        self,
        domain: str,
        item: str,
        attributes: Mapping[str, str],
        condition: Optional[Condition] = None,
    ) -> None:
        args = _condition_args(condition)
        for name, value in attributes.items():
            args.extend((name, value))
        applied = await self._redis.eval(_PUT, 1, self._key(domain, item), *args)
        if not applied:
            raise ConditionFailed(f"Condition on {condition.name!r} not met")

    async def delete(
        self,
        domain: str,
        item: str,
        names: Optional[Sequence[str]] = None,
        condition: Optional[Condition] = None,
    ) -> None:
        args = _condition_args(condition)
        if names is not None:
            if not names:
                return
            args.extend(names)
        applied = await self._redis.eval(_DELETE, 1, self._key(domain, item), *args)
        if not applied:
            raise ConditionFailed(f"Condition on {condition.name!r} not met")

    async def query(self, domain: str, predicate: Predicate) -> List[str]:
        prefix = self._domain_prefix(domain)
        keys = [key async for key in self._redis.scan_iter(match=_GLOB_SPECIAL.sub(r"\\\1", prefix) + "*")]
        if not keys:
            return []
        async with self._redis.pipeline(transaction=False) as pipe:
            for key in keys:
                pipe.hget(key, predicate.name)
            values = await pipe.execute()
        return [
            key[len(prefix):]
            for key, value in zip(keys, values)
            if predicate.matches([] if value is None else [value])
        ]

    async def close(self) -> None:
        await self._redis.aclose()
