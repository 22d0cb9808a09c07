from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from loguru import logger

from config import SETTINGS, DispatchPolicy
from errors import AlreadyRefreshing, NoUpstreamsAvailable, RelayError, ServiceBusy, TransportFailure, UpstreamRejected
from upstream.models import Family, Upstream
from upstream.pool import PoolSnapshot, UpstreamPool
from utils.lang import looks_translated

from .base import BaseTranslator, TranslationRequest, TranslationResult

if TYPE_CHECKING:
    from upstream.refresher import PoolRefresher

    from .factory import TranslatorFactory


@dataclass(slots=True)
class DispatchOutcome:
    result: TranslationResult
    upstream: Upstream
    failed_attempts: int = 0
    forced_account: bool = False
    used_fallback: bool = False


class Dispatcher:
    """Routes one request to a random alive upstream, evicting and retrying on failure.

    Each attempt re-reads the pool. When completeness verification is on and a
    relay answered with text that does not look translated, one retry is forced
    onto the account family before the fallback translator is consulted.
    """

    def __init__(
        self,
        pool: UpstreamPool,
        refresher: "PoolRefresher",
        translator_factory: "TranslatorFactory",
        *,
        fallback: Optional[BaseTranslator] = None,
        policy: DispatchPolicy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.pool = pool
        self.refresher = refresher
        self.translator_factory = translator_factory
        self.fallback = fallback
        self.policy = policy or SETTINGS.dispatch
        self.rng = rng or random.Random()

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        outcome = await self.dispatch(request)
        return outcome.result

    async def dispatch(self, request: TranslationRequest) -> DispatchOutcome:
        started = time.perf_counter()
        failures = 0
        force_account = False
        forced_once = False

        while True:
            snapshot = await self._ensure_upstreams()
            family = self._select_family(snapshot, force_account)
            forced = force_account and family is Family.ACCOUNT
            force_account = False
            upstream = self.rng.choice(snapshot.members(family))

            try:
                result = await self._invoke(upstream, request)
            except (TransportFailure, UpstreamRejected) as exc:
                failures += 1
                if await self.pool.evict(upstream):
                    logger.bind(
                        upstream=upstream.label,
                        error=exc.message,
                        text=request.text,
                        latency=_elapsed(started),
                    ).warning("remove an unavailable upstream and retranslate")
                self._check_attempts(failures)
                continue

            outcome = DispatchOutcome(result=result, upstream=upstream, failed_attempts=failures, forced_account=forced)
            if not self.policy.verify_completeness or looks_translated(result.text, request.target_lang):
                return self._finish(outcome, started)

            if family is Family.RELAY and not forced_once and (await self.pool.snapshot()).accounts:
                logger.bind(text=result.text, upstream=upstream.label, latency=_elapsed(started)).debug(
                    "detected missing translation, force use deepl translate"
                )
                force_account = True
                forced_once = True
                continue

            outcome = await self._verify_with_fallback(outcome, request, started)
            return self._finish(outcome, started)

    async def _ensure_upstreams(self) -> PoolSnapshot:
        snapshot = await self.pool.snapshot()
        if not snapshot.empty:
            return snapshot

        logger.debug("no available keys and urls, start rechecking")
        try:
            await self.refresher.refresh()
        except AlreadyRefreshing as exc:
            logger.debug("currently rechecking")
            raise ServiceBusy() from exc

        snapshot = await self.pool.snapshot()
        if snapshot.empty:
            logger.error("no available keys and urls")
            raise NoUpstreamsAvailable()
        return snapshot

    def _select_family(self, snapshot: PoolSnapshot, force_account: bool) -> Family:
        if force_account and snapshot.accounts:
            return Family.ACCOUNT
        if snapshot.accounts and snapshot.relays:
            return self.rng.choice((Family.ACCOUNT, Family.RELAY))
        if snapshot.relays:
            return Family.RELAY
        return Family.ACCOUNT

    async def _invoke(self, upstream: Upstream, request: TranslationRequest) -> TranslationResult:
        translator = self.translator_factory(upstream)
        try:
            return await asyncio.wait_for(translator.translate(request), timeout=self.policy.request_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportFailure(f"no answer within {self.policy.request_timeout}s") from exc
        finally:
            await translator.close()

    def _check_attempts(self, failures: int) -> None:
        if self.policy.max_attempts is not None and failures >= self.policy.max_attempts:
            raise NoUpstreamsAvailable(f"gave up after {failures} failed attempts")

    async def _verify_with_fallback(
        self, outcome: DispatchOutcome, request: TranslationRequest, started: float
    ) -> DispatchOutcome:
        """Replace suspect output with the fallback translation; keep the primary result on failure."""
        logger.bind(text=outcome.result.text, upstream=outcome.upstream.label, latency=_elapsed(started)).debug(
            "detected deepl is also missing translation, or has no available key, retranslate with google translate"
        )
        if self.fallback is None:
            return outcome

        try:
            verified = await asyncio.wait_for(self.fallback.translate(request), timeout=self.policy.request_timeout)
        except asyncio.TimeoutError:
            logger.bind(error="timed out", latency=_elapsed(started)).warning("google translate failed")
            return outcome
        except RelayError as exc:
            logger.bind(error=exc.message, latency=_elapsed(started)).warning("google translate failed")
            return outcome

        outcome.result = TranslationResult(text=verified.text, alternatives=list(outcome.result.alternatives))
        outcome.used_fallback = True
        return outcome

    def _finish(self, outcome: DispatchOutcome, started: float) -> DispatchOutcome:
        logger.bind(
            text=outcome.result.text,
            upstream=outcome.upstream.label,
            force_used_deepl=outcome.forced_account,
            used_google_translate=outcome.used_fallback,
            failed_attempts=outcome.failed_attempts,
            latency=_elapsed(started),
        ).debug("translation info")
        return outcome


def _elapsed(started: float) -> str:
    return f"{time.perf_counter() - started:.3f}s"
