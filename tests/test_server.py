"""HTTP boundary: inbound translate and check-alive endpoints."""

from __future__ import annotations

import json

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer
from loguru import logger

from conftest import ACCOUNT, RELAY, FakeFallback, FakeUpstreams, StaticSource
from errors import ConfigUnavailable, TransportFailure
from server import create_app
from service import RelayService


def make_service(settings, upstreams, *lines, fallback=None):
    return RelayService(settings, source=StaticSource(*lines), translator_factory=upstreams, fallback=fallback)


@pytest_asyncio.fixture
async def relay(settings):
    upstreams = FakeUpstreams({ACCOUNT.token: "你好", RELAY.token: TransportFailure("connection refused")})
    service = make_service(settings, upstreams, ACCOUNT.token)
    async with TestClient(TestServer(create_app(service))) as client:
        yield client, service, upstreams


@pytest.mark.asyncio
async def test_translate_returns_relay_shaped_body(relay):
    client, _, _ = relay

    resp = await client.post("/", json={"text": "hello", "source_lang": "EN", "target_lang": "ZH"})

    assert resp.status == 200
    assert resp.content_type == "application/json"
    assert await resp.json() == {"code": 200, "id": 0, "data": "你好", "alternatives": ["你好"]}


@pytest.mark.asyncio
async def test_translate_on_any_path(relay):
    client, _, _ = relay

    resp = await client.post("/translate", json={"text": "hello", "target_lang": "ZH"})

    assert resp.status == 200
    assert (await resp.json())["data"] == "你好"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[]",
        json.dumps({"text": "hello"}).encode(),
        json.dumps({"text": 5, "target_lang": "ZH"}).encode(),
        json.dumps({"text": "hello", "target_lang": "ZH", "source_lang": 1}).encode(),
    ],
)
async def test_malformed_body_is_rejected_without_upstream_calls(relay, body):
    client, _, upstreams = relay
    upstreams.calls.clear()

    resp = await client.post("/", data=body)

    assert resp.status == 400
    assert (await resp.text()).strip() == "invalid request body"
    assert upstreams.calls == []


@pytest.mark.asyncio
async def test_check_alive_reports_counts(relay):
    client, service, _ = relay

    resp = await client.get("/check-alive")

    assert resp.status == 200
    assert await resp.text() == (
        "all keys count:1, available keys count:1, all urls count:0, available urls count:0\n"
    )
    assert service.source.reads == 2


@pytest.mark.asyncio
async def test_check_alive_busy_is_503(relay):
    client, service, _ = relay
    assert service.refresher.guard.try_acquire()
    try:
        resp = await client.post("/check-alive")
    finally:
        service.refresher.guard.release()

    assert resp.status == 503
    assert "rechecking" in await resp.text()


@pytest.mark.asyncio
async def test_no_upstreams_after_refresh_is_503(settings):
    upstreams = FakeUpstreams({ACCOUNT.token: "你好"})
    source = StaticSource(ACCOUNT.token)
    service = RelayService(settings, source=source, translator_factory=upstreams)

    async with TestClient(TestServer(create_app(service))) as client:
        # everything dies after startup
        upstreams.behaviors[ACCOUNT.token] = TransportFailure("down")

        resp = await client.post("/", json={"text": "hello", "target_lang": "ZH"})

        assert resp.status == 503
        assert (await resp.text()).strip() == "no available keys and urls"


@pytest.mark.asyncio
async def test_completeness_fallback_through_http(verifying_settings):
    upstreams = FakeUpstreams({RELAY.token: "hello"})
    service = make_service(verifying_settings, upstreams, RELAY.token, fallback=FakeFallback("你好"))

    async with TestClient(TestServer(create_app(service))) as client:
        resp = await client.post("/", json={"text": "hello", "target_lang": "ZH"})
        body = await resp.json()

    assert body["data"] == "你好"
    assert body["alternatives"] == ["hello"]


@pytest.mark.asyncio
async def test_startup_fails_when_upstream_list_is_empty(settings):
    service = make_service(settings, FakeUpstreams(), "# nothing configured")

    with pytest.raises(ConfigUnavailable):
        await service.start()

    assert service.session is None
    assert (await service.pool.snapshot()).empty


@pytest.mark.asyncio
async def test_running_is_logged_after_startup_refresh(settings):
    messages = []
    handler_id = logger.add(messages.append, format="{message}", level="INFO")
    try:
        service = make_service(settings, FakeUpstreams({ACCOUNT.token: "你好"}), ACCOUNT.token)
        async with TestClient(TestServer(create_app(service))):
            pass
    finally:
        logger.remove(handler_id)

    lines = [message.strip() for message in messages]
    running = [i for i, line in enumerate(lines) if line.startswith("server running on http://")]
    assert len(running) == 1
    assert lines.index("available check") < running[0]
