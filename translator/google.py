"""
Google Translator used as the verification fallback.

Talks to the keyless ``translate_a/single`` endpoint (client=gtx). Only
consulted when both primary families returned output that does not look
translated.
"""
from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any, List

import aiohttp

from errors import TransportFailure, UpstreamRejected

from .base import TRANSPORT_ERRORS, BaseTranslator, TranslationRequest, TranslationResult


class GoogleTranslator(BaseTranslator):
    name = "google"

    DEFAULT_ENDPOINT = "https://translate.googleapis.com/translate_a/single"
    BAD_REQUEST_MARKER = "<title>Error 400 (Bad Request)"

    def __init__(
        self,
        *,
        endpoint: str | None = None,
        timeout: float = 10.0,
        proxy: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(timeout=timeout, proxy=proxy, session=session)
        self.endpoint = endpoint or self.DEFAULT_ENDPOINT
        self.logger = logging.getLogger(self.__class__.__name__)

    def _build_url(self, request: TranslationRequest) -> str:
        params = {
            "client": "gtx",
            "sl": (request.source_lang or "auto").lower(),
            "tl": request.target_lang.lower(),
            "dt": "t",
            "q": request.text,
        }
        return f"{self.endpoint}?{urllib.parse.urlencode(params)}"

    @staticmethod
    def _join_segments(data: Any) -> str:
        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            return ""
        parts: List[str] = []
        for segment in data[0]:
            if isinstance(segment, list) and segment and segment[0] is not None:
                parts.append(str(segment[0]))
        return "".join(parts)

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        session = await self._get_session()
        url = self._build_url(request)

        try:
            async with session.get(url, proxy=self.proxy, timeout=self.client_timeout) as resp:
                body = await resp.text(errors="replace")
        except TRANSPORT_ERRORS as e:
            raise TransportFailure(f"google translate connection error: {e!r}") from e

        if self.BAD_REQUEST_MARKER in body:
            raise UpstreamRejected("google translate failed: HTTP 400 (Bad Request)")

        try:
            data = json.loads(body)
        except ValueError as e:
            raise TransportFailure(f"google translate failed: {e}") from e

        text = self._join_segments(data)
        if not text:
            raise UpstreamRejected("google translate failed: empty result")

        self.logger.debug("google translate returned %d chars", len(text))
        return TranslationResult(text=text, alternatives=[])
