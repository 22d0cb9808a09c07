"""
Translator Factory

Builds the adapter that speaks to a given upstream.
"""
from __future__ import annotations

from typing import Callable, Optional

import aiohttp

from config import SETTINGS, EndpointSettings
from upstream.models import Family, Upstream

from .base import BaseTranslator
from .deepl_api import DeepLAPITranslator
from .deeplx import DeepLXTranslator
from .google import GoogleTranslator


TranslatorFactory = Callable[[Upstream], BaseTranslator]


def build_translator(
    upstream: Upstream,
    *,
    session: Optional[aiohttp.ClientSession] = None,
    endpoints: Optional[EndpointSettings] = None,
    timeout: Optional[float] = None,
) -> BaseTranslator:
    """Build the adapter for ``upstream``.

    Args:
        upstream: Account credential or relay URL
        session: Shared client session; adapters create their own when omitted
        endpoints: Endpoint settings (falls back to global settings)
        timeout: Per-call timeout override

    Raises:
        ValueError: If the upstream family is not supported
    """
    endpoints = endpoints or SETTINGS.endpoints

    if upstream.family is Family.ACCOUNT:
        return DeepLAPITranslator(
            api_key=upstream.token,
            api_url=endpoints.deepl_api_url,
            free_api_url=endpoints.deepl_free_api_url,
            timeout=timeout or SETTINGS.dispatch.request_timeout,
            proxy=endpoints.proxy_url,
            session=session,
        )

    if upstream.family is Family.RELAY:
        return DeepLXTranslator(
            url=upstream.token,
            timeout=timeout or endpoints.relay_timeout,
            proxy=endpoints.proxy_url,
            session=session,
        )

    raise ValueError(f"Unsupported upstream family: {upstream.family}")


def build_fallback_translator(
    *,
    session: Optional[aiohttp.ClientSession] = None,
    endpoints: Optional[EndpointSettings] = None,
    timeout: Optional[float] = None,
) -> GoogleTranslator:
    endpoints = endpoints or SETTINGS.endpoints
    return GoogleTranslator(
        endpoint=endpoints.google_url,
        timeout=timeout or SETTINGS.dispatch.request_timeout,
        proxy=endpoints.proxy_url,
        session=session,
    )


def make_translator_factory(
    session: Optional[aiohttp.ClientSession] = None,
    endpoints: Optional[EndpointSettings] = None,
) -> TranslatorFactory:
    def factory(upstream: Upstream) -> BaseTranslator:
        return build_translator(upstream, session=session, endpoints=endpoints)

    return factory
