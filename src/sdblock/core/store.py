"""Attribute store contract consumed by the lock client."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence


class StoreError(RuntimeError):
    """Base class for errors raised by attribute stores."""


class ConditionFailed(StoreError):
    """The precondition of a conditional put or delete did not hold."""


@dataclass(frozen=True, slots=True)
class Condition:
    """Precondition on a single attribute, checked atomically by the store."""

    name: str
    exists: bool
    value: Optional[str] = None

    @classmethod
    def absent(cls, name: str) -> "Condition":
        return cls(name=name, exists=False)

    @classmethod
    def equals(cls, name: str, value: str) -> "Condition":
        return cls(name=name, exists=True, value=value)

    def matches(self, values: Sequence[str]) -> bool:
        if not self.exists:
            return not values
        return self.value in values


@dataclass(frozen=True, slots=True)
class Predicate:
    """String comparison over one attribute, used by ``AttributeStore.query``."""

    name: str
    value: Optional[str] = None

    @classmethod
    def exists(cls, name: str) -> "Predicate":
        return cls(name=name)

    @classmethod
    def less_than(cls, name: str, value: str) -> "Predicate":
        return cls(name=name, value=value)

    def matches(self, values: Sequence[str]) -> bool:
        if self.value is None:
            return bool(values)
        return any(candidate < self.value for candidate in values)


class AttributeStore(abc.ABC):
    """Item/attribute store offering conditional writes.

    Items live in a domain and carry named, possibly multi-valued, string
    attributes. ``get`` must be consistent with the latest successful write;
    ``query`` may lag behind it.

    Implementations raise ``ConditionFailed`` when a condition does not hold
    and let every other backend error propagate untouched.
    """

    async def create_domain(self, domain: str) -> None:
        """Provision ``domain``. Backends without provisioning do nothing."""

    @abc.abstractmethod
    async def get(self, domain: str, item: str) -> Dict[str, List[str]]:  # pragma: no cover - interface
        """Return all attributes of ``item``, or an empty dict."""
        raise NotImplementedError

    @abc.abstractmethod
    async def put(
        self,
        domain: str,
        item: str,
        attributes: Mapping[str, str],
        condition: Optional[Condition] = None,
    ) -> None:  # pragma: no cover - interface
        """Replace ``attributes`` on ``item`` if ``condition`` holds."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(
        self,
        domain: str,
        item: str,
        names: Optional[Sequence[str]] = None,
        condition: Optional[Condition] = None,
    ) -> None:  # pragma: no cover - interface
        """Delete ``names`` (every attribute when None) if ``condition`` holds."""
        raise NotImplementedError

    @abc.abstractmethod
    async def query(self, domain: str, predicate: Predicate) -> List[str]:  # pragma: no cover - interface
        """Return names of items whose attributes satisfy ``predicate``."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
