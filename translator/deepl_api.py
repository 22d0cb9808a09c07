"""
DeepL API Translator

Account-family adapter: one DeepL API credential, Free or Pro plan.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

import aiohttp

from errors import TransportFailure, UpstreamRejected

from .base import TRANSPORT_ERRORS, BaseTranslator, TranslationRequest, TranslationResult


class DeepLAPITranslator(BaseTranslator):
    """DeepL API Translator with Free and Pro plan support.

    Keys ending in ``:fx`` belong to the Free plan and are sent to the free
    endpoint; every other key goes to the Pro endpoint.
    """

    name = "deepl_api"

    PRO_API_URL = "https://api.deepl.com/v2/translate"
    FREE_API_URL = "https://api-free.deepl.com/v2/translate"

    TOO_MANY_REQUESTS_MARKER = b"<title>429 Too Many Requests"

    STATUS_MESSAGES = {
        403: "invalid API key or insufficient permissions",
        429: "too many requests",
        456: "quota exceeded",
    }

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str | None = None,
        free_api_url: str | None = None,
        timeout: float = 10.0,
        proxy: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("DeepL API key is required")

        super().__init__(timeout=timeout, proxy=proxy, session=session)
        self.api_key = api_key

        if api_key.endswith(":fx"):
            self.api_url = free_api_url or self.FREE_API_URL
        else:
            self.api_url = api_url or self.PRO_API_URL

        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"DeepL-Auth-Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, request: TranslationRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": [request.text],
            "target_lang": request.target_lang.upper(),
        }
        if request.tag_handling:
            payload["tag_handling"] = request.tag_handling
        return payload

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        session = await self._get_session()

        try:
            async with session.post(
                self.api_url,
                json=self._build_payload(request),
                headers=self.headers,
                proxy=self.proxy,
                timeout=self.client_timeout,
            ) as resp:
                status = resp.status
                body = await resp.read()
        except TRANSPORT_ERRORS as e:
            raise TransportFailure(f"DeepL API connection error: {e!r}") from e

        if self.TOO_MANY_REQUESTS_MARKER in body:
            raise UpstreamRejected("too many requests")

        try:
            data = json.loads(body)
        except ValueError as e:
            if status in self.STATUS_MESSAGES:
                raise UpstreamRejected(self.STATUS_MESSAGES[status]) from e
            raise TransportFailure(f"DeepL API returned undecodable body (HTTP {status})") from e

        if not isinstance(data, dict):
            raise TransportFailure(f"DeepL API returned unexpected payload (HTTP {status})")

        translations = data.get("translations") or []
        if not isinstance(translations, list):
            raise TransportFailure(f"DeepL API returned unexpected translations field (HTTP {status})")
        if not translations:
            message = data.get("message") or self.STATUS_MESSAGES.get(status) or f"HTTP {status}"
            self.logger.debug("deepl api returned no translations (HTTP %d): %s", status, message)
            raise UpstreamRejected(str(message))

        first = translations[0]
        if not isinstance(first, dict) or not isinstance(first.get("text"), str):
            raise TransportFailure("DeepL API returned a malformed translation entry")

        text = first["text"]
        return TranslationResult(text=text, alternatives=[text])
