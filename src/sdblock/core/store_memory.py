"""In-process attribute store for tests and single-process deployments."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence

from .store import AttributeStore, Condition, ConditionFailed, Predicate


Item = Dict[str, List[str]]


class InMemoryAttributeStore(AttributeStore):
    """Dict-backed store; every operation is atomic with respect to other tasks."""

    def __init__(self) -> None:
        self._domains: Dict[str, Dict[str, Item]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def create_domain(self, domain: str) -> None:
        async with self._lock:
            self._domains[domain]

    async def get(self, domain: str, item: str) -> Dict[str, List[str]]:
        async with self._lock:
            attributes = self._domains[domain].get(item, {})
            return {name: list(values) for name, values in attributes.items()}

    async def put(
        self,
        domain: str,
        item: str,
        attributes: Mapping[str, str],
        condition: Optional[Condition] = None,
    ) -> None:
        async with self._lock:
            items = self._domains[domain]
            self._check(items.get(item, {}), condition)
            current = items.setdefault(item, {})
            for name, value in attributes.items():
                current[name] = [value]

    async def delete(
        self,
        domain: str,
        item: str,
        names: Optional[Sequence[str]] = None,
        condition: Optional[Condition] = None,
    ) -> None:
        if names is not None and not names:
            return
        async with self._lock:
            items = self._domains[domain]
            current = items.get(item, {})
            self._check(current, condition)
            if names is None:
                items.pop(item, None)
                return
            for name in names:
                current.pop(name, None)
            if not current:
                items.pop(item, None)

    async def query(self, domain: str, predicate: Predicate) -> List[str]:
        async with self._lock:
            return [
                name
                for name, attributes in self._domains[domain].items()
                if predicate.matches(attributes.get(predicate.name, []))
            ]

    @staticmethod
    def _check(current: Item, condition: Optional[Condition]) -> None:
        if condition is None:
            return
        if not condition.matches(current.get(condition.name, [])):
            raise ConditionFailed(f"Condition on {condition.name!r} not met")
