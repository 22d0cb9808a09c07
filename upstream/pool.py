from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, List, Tuple

from .models import Family, Upstream


class ReadWriteLock:
    """Shared/exclusive lock for coroutines.

    Any number of readers may hold the lock together; a writer waits until no
    reader is inside and excludes readers and other writers.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writing = False

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing and self._readers == 0)
            self._writing = True
        try:
            yield
        finally:
            async with self._cond:
                self._writing = False
                self._cond.notify_all()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writing_now(self) -> bool:
        return self._writing


@dataclass(frozen=True, slots=True)
class PoolSnapshot:
    accounts: Tuple[Upstream, ...]
    relays: Tuple[Upstream, ...]

    @property
    def empty(self) -> bool:
        return not self.accounts and not self.relays

    def members(self, family: Family) -> Tuple[Upstream, ...]:
        return self.accounts if family is Family.ACCOUNT else self.relays


class UpstreamPool:
    """Alive upstreams, one list per family.

    Only the refresher replaces the lists wholesale; the dispatcher removes
    single members after a confirmed failure.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._accounts: List[Upstream] = []
        self._relays: List[Upstream] = []

    def _members(self, family: Family) -> List[Upstream]:
        return self._accounts if family is Family.ACCOUNT else self._relays

    async def snapshot(self) -> PoolSnapshot:
        async with self._lock.reading():
            return PoolSnapshot(accounts=tuple(self._accounts), relays=tuple(self._relays))

    async def evict(self, upstream: Upstream) -> bool:
        """Remove ``upstream`` if it is still alive; False when already gone."""
        async with self._lock.writing():
            members = self._members(upstream.family)
            try:
                index = members.index(upstream)
            except ValueError:
                return False
            members[index] = members[-1]
            members.pop()
            return True

    async def replace(self, accounts: Iterable[Upstream], relays: Iterable[Upstream]) -> PoolSnapshot:
        fresh_accounts = list(dict.fromkeys(up for up in accounts if up.family is Family.ACCOUNT))
        fresh_relays = list(dict.fromkeys(up for up in relays if up.family is Family.RELAY))
        async with self._lock.writing():
            self._accounts = fresh_accounts
            self._relays = fresh_relays
            return PoolSnapshot(accounts=tuple(self._accounts), relays=tuple(self._relays))

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock
