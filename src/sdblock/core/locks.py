"""Abstract interfaces for scoped distributed locks."""

from __future__ import annotations

import abc
from typing import Iterable, Mapping, Optional, Protocol, Tuple, Union


ExtraAttributes = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class AsyncLock(Protocol):
    async def __aenter__(self) -> bool: ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


class LockManager(abc.ABC):
    @abc.abstractmethod
    def hold(
        self,
        resource: str,
        attributes: Optional[ExtraAttributes] = None,
        *,
        blocking: bool = True,
    ) -> AsyncLock:  # pragma: no cover - interface
        """Return an async context manager that acquires ``resource`` on entry."""
        raise NotImplementedError
