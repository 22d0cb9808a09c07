"""
DeepLX Relay Translator

Relay-family adapter: forwards a request to a peer relay that speaks the
same ``{code, id, data, alternatives}`` protocol this service exposes.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

import aiohttp

from errors import TransportFailure, UpstreamRejected

from .base import TRANSPORT_ERRORS, BaseTranslator, TranslationRequest, TranslationResult


class DeepLXTranslator(BaseTranslator):
    name = "deeplx"

    def __init__(
        self,
        *,
        url: str,
        timeout: float = 5.0,
        proxy: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not url:
            raise ValueError("Relay URL is required")
        super().__init__(timeout=timeout, proxy=proxy, session=session)
        self.url = url
        self.logger = logging.getLogger(self.__class__.__name__)

    def _build_payload(self, request: TranslationRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": request.text,
            "source_lang": request.source_lang or "",
            "target_lang": request.target_lang,
        }
        if request.tag_handling:
            payload["tag_handling"] = request.tag_handling
        return payload

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        session = await self._get_session()

        try:
            async with session.post(
                self.url,
                json=self._build_payload(request),
                proxy=self.proxy,
                timeout=self.client_timeout,
            ) as resp:
                if resp.status != 200:
                    raise UpstreamRejected(f"HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except TRANSPORT_ERRORS as e:
            raise TransportFailure(f"relay connection error: {e!r}") from e
        except ValueError as e:
            raise TransportFailure(f"relay returned undecodable body: {e}") from e

        if not isinstance(data, dict):
            raise TransportFailure("relay returned unexpected payload")

        code = data.get("code")
        if code != 200:
            self.logger.debug("relay %s answered with code %r", self.url, code)
            raise UpstreamRejected(f"HTTP {code}")

        text = data.get("data")
        if not isinstance(text, str):
            raise TransportFailure("relay response has no data field")

        alternatives = data.get("alternatives") or []
        if not isinstance(alternatives, list):
            raise TransportFailure("relay response has malformed alternatives")
        alternatives = [alt for alt in alternatives if isinstance(alt, str)]
        return TranslationResult(text=text, alternatives=alternatives)
