from __future__ import annotations

import asyncio
from functools import partial
from typing import Optional

import aiohttp
from loguru import logger

from config import SETTINGS, AppSettings
from errors import AlreadyRefreshing, RelayError
from translator.base import BaseTranslator
from translator.dispatcher import Dispatcher
from translator.factory import TranslatorFactory, build_fallback_translator, make_translator_factory
from upstream.pool import UpstreamPool
from upstream.prober import UpstreamProber
from upstream.refresher import PoolRefresher, RefreshSummary, UpstreamSource
from upstream.source import load_upstreams


class RelayService:
    """Owns the pool and everything that reads or mutates it.

    ``start`` performs the mandatory first refresh (errors propagate and abort
    startup) and schedules the periodic refresh; ``close`` undoes both.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        source: Optional[UpstreamSource] = None,
        translator_factory: Optional[TranslatorFactory] = None,
        fallback: Optional[BaseTranslator] = None,
    ) -> None:
        self.settings = settings or SETTINGS
        self.source = source or partial(load_upstreams, self.settings.upstreams_path)
        self._translator_factory = translator_factory
        self._fallback = fallback
        self.session: Optional[aiohttp.ClientSession] = None
        self.pool = UpstreamPool()
        self.refresher: Optional[PoolRefresher] = None
        self.dispatcher: Optional[Dispatcher] = None
        self._scheduler: Optional[asyncio.Task] = None

    def _wire(self) -> None:
        factory = self._translator_factory
        fallback = self._fallback
        if factory is None or (fallback is None and self.settings.dispatch.verify_completeness):
            self.session = aiohttp.ClientSession()
        if factory is None:
            factory = make_translator_factory(self.session, self.settings.endpoints)
        if fallback is None and self.settings.dispatch.verify_completeness:
            fallback = build_fallback_translator(session=self.session, endpoints=self.settings.endpoints)

        prober = UpstreamProber(factory, self.settings.probe)
        self.refresher = PoolRefresher(self.pool, self.source, prober)
        self.dispatcher = Dispatcher(
            self.pool,
            self.refresher,
            factory,
            fallback=fallback,
            policy=self.settings.dispatch,
        )

    async def start(self, *, schedule: bool = True) -> RefreshSummary:
        if self.refresher is None:
            self._wire()
        try:
            summary = await self.refresh()
        except Exception:
            await self.close()
            raise
        if schedule and self.settings.probe.refresh_interval > 0:
            self._scheduler = asyncio.create_task(self._refresh_periodically(), name="pool-refresh")
        return summary

    async def refresh(self) -> RefreshSummary:
        if self.refresher is None:
            self._wire()
        return await self.refresher.refresh()

    async def _refresh_periodically(self) -> None:
        interval = self.settings.probe.refresh_interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except AlreadyRefreshing:
                logger.warning("currently rechecking")
            except RelayError as exc:
                logger.bind(error=exc.message).error("scheduled refresh failed, keeping previous pool")
            except Exception:
                logger.exception("scheduled refresh crashed, keeping previous pool")

    async def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel()
            try:
                await self._scheduler
            except asyncio.CancelledError:
                pass
            self._scheduler = None
        if self._fallback is None and self.dispatcher is not None and self.dispatcher.fallback is not None:
            await self.dispatcher.fallback.close()
        if self.session is not None:
            await self.session.close()
            self.session = None
