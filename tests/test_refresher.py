import asyncio

import pytest

from conftest import FakeUpstreams, StaticSource
from config import ProbeSettings
from errors import AlreadyRefreshing, ConfigUnavailable, TransportFailure, UpstreamRejected
from translator.base import TranslationRequest, TranslationResult
from upstream.models import Upstream
from upstream.pool import UpstreamPool
from upstream.prober import UpstreamProber
from upstream.refresher import PoolRefresher, RefreshSummary

PROBE_SETTINGS = ProbeSettings(probe_timeout=0.5, refresh_interval=0)


def make_refresher(source, upstreams, pool=None):
    pool = pool or UpstreamPool()
    prober = UpstreamProber(upstreams, PROBE_SETTINGS)
    return PoolRefresher(pool, source, prober), pool


class TestProber:
    @pytest.mark.asyncio
    async def test_alive_upstream(self):
        upstreams = FakeUpstreams({"key-ok": "测试"})
        prober = UpstreamProber(upstreams, PROBE_SETTINGS)

        assert await prober.probe(Upstream.parse("key-ok")) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [TransportFailure("connection reset"), UpstreamRejected("Quota Exceeded"), UpstreamRejected("HTTP 503")],
    )
    async def test_failures_are_classified_dead(self, error):
        upstreams = FakeUpstreams({"https://relay.test": error})
        prober = UpstreamProber(upstreams, PROBE_SETTINGS)

        assert await prober.probe(Upstream.parse("https://relay.test")) is False

    @pytest.mark.asyncio
    async def test_timeout_is_dead(self):
        async def hang(request):
            await asyncio.sleep(10)

        class Hanging(FakeUpstreams):
            def __call__(self, upstream):
                translator = super().__call__(upstream)
                translator.translate = hang
                return translator

        prober = UpstreamProber(Hanging(), ProbeSettings(probe_timeout=0.05, refresh_interval=0))

        assert await prober.probe(Upstream.parse("key-slow")) is False

    @pytest.mark.asyncio
    async def test_probe_uses_fixed_test_request(self):
        seen = []

        def record(request: TranslationRequest) -> TranslationResult:
            seen.append(request)
            return TranslationResult(text="测试")

        prober = UpstreamProber(FakeUpstreams({"key": record}), PROBE_SETTINGS)
        await prober.probe(Upstream.parse("key"))

        assert seen == [TranslationRequest(text="test", source_lang="en", target_lang="zh")]


class TestRefresher:
    @pytest.mark.asyncio
    async def test_alive_sets_are_subsets_of_configured_list(self):
        source = StaticSource("key-ok", "key-dead", "https://relay-ok.test", "https://relay-dead.test")
        upstreams = FakeUpstreams(
            {
                "key-ok": "你好",
                "key-dead": UpstreamRejected("Quota Exceeded"),
                "https://relay-ok.test": "你好",
                "https://relay-dead.test": TransportFailure("refused"),
            }
        )
        refresher, pool = make_refresher(source, upstreams)

        summary = await refresher.refresh()

        assert summary == RefreshSummary(total_accounts=2, alive_accounts=1, total_relays=2, alive_relays=1)
        snapshot = await pool.snapshot()
        assert snapshot.accounts == (Upstream.parse("key-ok"),)
        assert snapshot.relays == (Upstream.parse("https://relay-ok.test"),)
        assert not refresher.refreshing

    @pytest.mark.asyncio
    async def test_list_is_reread_every_cycle(self):
        source = StaticSource("key-1")
        refresher, pool = make_refresher(source, FakeUpstreams({"key-1": "好", "key-2": "好"}))

        await refresher.refresh()
        source.lines.append("key-2")
        await refresher.refresh()

        assert source.reads == 2
        assert len((await pool.snapshot()).accounts) == 2

    def test_summary_text(self):
        summary = RefreshSummary(total_accounts=3, alive_accounts=1, total_relays=2, alive_relays=0)

        assert str(summary) == (
            "all keys count:3, available keys count:1, all urls count:2, available urls count:0\n"
        )

    @pytest.mark.asyncio
    async def test_concurrent_refresh_is_rejected(self):
        gate = asyncio.Event()

        async def slow(request):
            await gate.wait()
            return TranslationResult(text="你好")

        class Gated(FakeUpstreams):
            def __call__(self, upstream):
                translator = super().__call__(upstream)
                translator.translate = slow
                return translator

        refresher, pool = make_refresher(StaticSource("key-1"), Gated())
        refresher.prober.settings = ProbeSettings(probe_timeout=5, refresh_interval=0)

        first = asyncio.create_task(refresher.refresh())
        await asyncio.sleep(0.01)
        assert refresher.refreshing

        with pytest.raises(AlreadyRefreshing):
            await refresher.refresh()
        assert (await pool.snapshot()).empty

        gate.set()
        summary = await first
        assert summary.alive_accounts == 1
        assert not refresher.refreshing

    @pytest.mark.asyncio
    async def test_config_error_keeps_previous_pool_and_clears_flag(self):
        source = StaticSource("key-1")
        refresher, pool = make_refresher(source, FakeUpstreams({"key-1": "好"}))
        await refresher.refresh()

        source.lines = ["# nothing left"]
        with pytest.raises(ConfigUnavailable):
            await refresher.refresh()

        assert not refresher.refreshing
        assert (await pool.snapshot()).accounts == (Upstream.parse("key-1"),)

    @pytest.mark.asyncio
    async def test_crashing_probe_does_not_abort_fan_out(self):
        class Exploding(FakeUpstreams):
            def __call__(self, upstream):
                if upstream.token == "key-bad":
                    raise RuntimeError("adapter construction failed")
                return super().__call__(upstream)

        refresher, pool = make_refresher(StaticSource("key-bad", "key-good"), Exploding({"key-good": "好"}))

        summary = await refresher.refresh()

        assert summary.alive_accounts == 1
        assert (await pool.snapshot()).accounts == (Upstream.parse("key-good"),)
