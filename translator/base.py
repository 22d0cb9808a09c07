from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from errors import MalformedRequest


@dataclass(slots=True)
class TranslationRequest:
    text: str
    target_lang: str
    source_lang: str | None = None
    tag_handling: str | None = None

    @classmethod
    def from_json(cls, raw: bytes | str) -> "TranslationRequest":
        """Parse an inbound relay body; anything off-shape is MalformedRequest."""
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise MalformedRequest() from exc
        if not isinstance(payload, dict):
            raise MalformedRequest()

        text = payload.get("text")
        target_lang = payload.get("target_lang")
        source_lang = payload.get("source_lang")
        tag_handling = payload.get("tag_handling")
        if not isinstance(text, str) or not isinstance(target_lang, str) or not target_lang:
            raise MalformedRequest()
        for optional in (source_lang, tag_handling):
            if optional is not None and not isinstance(optional, str):
                raise MalformedRequest()
        return cls(
            text=text,
            target_lang=target_lang,
            source_lang=source_lang or None,
            tag_handling=tag_handling or None,
        )


@dataclass(slots=True)
class TranslationResult:
    text: str
    alternatives: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {"code": 200, "id": 0, "data": self.text, "alternatives": list(self.alternatives)}


class BaseTranslator(ABC):
    name: str = "base"

    def __init__(
        self,
        *,
        timeout: float = 20.0,
        proxy: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.timeout = timeout
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Return the shared session, or lazily create one owned by this adapter."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    @property
    def client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout)

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    @abstractmethod
    async def translate(self, request: TranslationRequest) -> TranslationResult:
        """Translate one request or raise TransportFailure / UpstreamRejected."""


TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)
