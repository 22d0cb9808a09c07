from __future__ import annotations

import json
from functools import partial
from typing import AsyncIterator

from aiohttp import web
from loguru import logger

from errors import AlreadyRefreshing, RelayError
from service import RelayService
from translator.base import TranslationRequest


SERVICE_KEY = web.AppKey("relay_service", RelayService)

json_response = partial(web.json_response, dumps=partial(json.dumps, ensure_ascii=False))


def _error_response(exc: RelayError) -> web.Response:
    return web.Response(status=exc.status, text=f"{exc.message}\n")


async def handle_translate(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        payload = TranslationRequest.from_json(await request.read())
    except RelayError as exc:
        logger.warning("invalid request body")
        return _error_response(exc)

    try:
        result = await service.dispatcher.translate(payload)
    except RelayError as exc:
        return _error_response(exc)
    return json_response(result.to_payload())


async def handle_check_alive(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    logger.bind(remote=request.remote).debug("request of rechecking")
    try:
        summary = await service.refresh()
    except AlreadyRefreshing as exc:
        logger.warning("currently rechecking")
        return _error_response(exc)
    except RelayError as exc:
        logger.warning(exc.message)
        return _error_response(exc)
    return web.Response(text=str(summary))


def create_app(service: RelayService) -> web.Application:
    """Build the relay application; startup fails if the first refresh does."""
    app = web.Application()
    app[SERVICE_KEY] = service

    async def relay_lifecycle(app: web.Application) -> AsyncIterator[None]:
        await service.start()
        logger.info(f"server running on http://{service.settings.host}:{service.settings.port}")
        yield
        await service.close()

    app.cleanup_ctx.append(relay_lifecycle)
    app.router.add_route("*", "/check-alive", handle_check_alive)
    app.router.add_post("/{tail:.*}", handle_translate)
    return app
