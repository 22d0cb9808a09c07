from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Callable, List

from loguru import logger

from errors import AlreadyRefreshing

from .models import Family, Upstream
from .pool import UpstreamPool
from .prober import UpstreamProber
from .source import ConfiguredUpstreams


UpstreamSource = Callable[[], ConfiguredUpstreams]


@dataclass(frozen=True, slots=True)
class RefreshSummary:
    total_accounts: int
    alive_accounts: int
    total_relays: int
    alive_relays: int

    def __str__(self) -> str:
        return (
            f"all keys count:{self.total_accounts}, available keys count:{self.alive_accounts}, "
            f"all urls count:{self.total_relays}, available urls count:{self.alive_relays}\n"
        )


class RefreshGuard:
    """Non-blocking "refresh in progress" flag with atomic test-and-set."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def active(self) -> bool:
        return self._lock.locked()


class PoolRefresher:
    def __init__(self, pool: UpstreamPool, source: UpstreamSource, prober: UpstreamProber) -> None:
        self.pool = pool
        self.source = source
        self.prober = prober
        self.guard = RefreshGuard()

    @property
    def refreshing(self) -> bool:
        return self.guard.active

    async def refresh(self) -> RefreshSummary:
        """Re-read the upstream list, probe every entry and swap in the survivors.

        Raises:
            AlreadyRefreshing: another refresh holds the guard
            ConfigUnavailable: the upstream list is empty or unreadable
        """
        if not self.guard.try_acquire():
            raise AlreadyRefreshing()
        try:
            configured = await asyncio.to_thread(self.source)
            alive = await self._probe_all(configured.all)
            snapshot = await self.pool.replace(
                accounts=[up for up in alive if up.family is Family.ACCOUNT],
                relays=[up for up in alive if up.family is Family.RELAY],
            )
        finally:
            self.guard.release()

        summary = RefreshSummary(
            total_accounts=len(configured.accounts),
            alive_accounts=len(snapshot.accounts),
            total_relays=len(configured.relays),
            alive_relays=len(snapshot.relays),
        )
        logger.bind(
            all_keys=summary.total_accounts,
            available_keys=summary.alive_accounts,
            all_urls=summary.total_relays,
            available_urls=summary.alive_relays,
        ).info("available check")
        return summary

    async def _probe_all(self, upstreams: List[Upstream]) -> List[Upstream]:
        verdicts = await asyncio.gather(
            *(self.prober.probe(upstream) for upstream in upstreams),
            return_exceptions=True,
        )
        alive: List[Upstream] = []
        for upstream, verdict in zip(upstreams, verdicts):
            if isinstance(verdict, BaseException):
                logger.opt(exception=verdict).bind(upstream=upstream.label).error("probe crashed, treating upstream as dead")
                continue
            if verdict:
                alive.append(upstream)
        return alive
