"""Shared fixtures and fake upstream adapters."""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Union

import pytest

from config import AppSettings, DispatchPolicy, ProbeSettings
from errors import TransportFailure
from translator.base import BaseTranslator, TranslationRequest, TranslationResult
from upstream.models import Upstream
from upstream.source import ConfiguredUpstreams, parse_upstreams

Behavior = Union[str, Exception, Callable[[TranslationRequest], TranslationResult]]

ACCOUNT = Upstream.parse("account-key-0001:fx")
RELAY = Upstream.parse("http://relay-1.test/translate")


class FakeTranslator(BaseTranslator):
    """Answers with a fixed text or raises a fixed error, recording every call."""

    name = "fake"

    def __init__(self, upstream: Upstream, behavior: Behavior, calls: List[Upstream]) -> None:
        super().__init__(timeout=1.0)
        self.upstream = upstream
        self.behavior = behavior
        self.calls = calls

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        self.calls.append(self.upstream)
        await asyncio.sleep(0)
        if isinstance(self.behavior, Exception):
            raise self.behavior
        if callable(self.behavior):
            return self.behavior(request)
        return TranslationResult(text=self.behavior, alternatives=[self.behavior])

    async def close(self) -> None:
        return None


class FakeUpstreams:
    """Translator factory keyed by upstream token."""

    def __init__(self, behaviors: Dict[str, Behavior] | None = None) -> None:
        self.behaviors: Dict[str, Behavior] = dict(behaviors or {})
        self.calls: List[Upstream] = []

    def __call__(self, upstream: Upstream) -> BaseTranslator:
        behavior = self.behaviors.get(upstream.token, TransportFailure("unknown upstream"))
        return FakeTranslator(upstream, behavior, self.calls)

    def calls_to(self, upstream: Upstream) -> int:
        return sum(1 for called in self.calls if called == upstream)


class FakeFallback(BaseTranslator):
    name = "fake_fallback"

    def __init__(self, behavior: Behavior) -> None:
        super().__init__(timeout=1.0)
        self.behavior = behavior
        self.requests: List[TranslationRequest] = []

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        self.requests.append(request)
        if isinstance(self.behavior, Exception):
            raise self.behavior
        return TranslationResult(text=self.behavior)

    async def close(self) -> None:
        return None


class StaticSource:
    """Upstream list source backed by in-memory lines."""

    def __init__(self, *lines: str) -> None:
        self.lines = list(lines)
        self.reads = 0

    def __call__(self) -> ConfiguredUpstreams:
        self.reads += 1
        return parse_upstreams(self.lines)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        dispatch=DispatchPolicy(verify_completeness=False, request_timeout=2.0, max_attempts=None),
        probe=ProbeSettings(probe_timeout=1.0, refresh_interval=0),
    )


@pytest.fixture
def verifying_settings(settings: AppSettings) -> AppSettings:
    settings.dispatch.verify_completeness = True
    return settings
