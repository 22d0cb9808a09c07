from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from config import SETTINGS, ProbeSettings
from errors import RelayError
from translator.base import TranslationRequest

from .models import Upstream

if TYPE_CHECKING:
    from translator.factory import TranslatorFactory


class UpstreamProber:
    """Classifies an upstream as alive or dead with one short test translation.

    ``probe`` never raises for upstream-side problems: transport errors,
    rejections and timeouts all become ``False``.
    """

    def __init__(self, translator_factory: "TranslatorFactory", settings: ProbeSettings | None = None) -> None:
        self.translator_factory = translator_factory
        self.settings = settings or SETTINGS.probe

    @property
    def probe_request(self) -> TranslationRequest:
        return TranslationRequest(
            text=self.settings.text,
            source_lang=self.settings.source_lang,
            target_lang=self.settings.target_lang,
        )

    async def probe(self, upstream: Upstream) -> bool:
        log = logger.bind(upstream=upstream.label, family=upstream.family.value)
        translator = self.translator_factory(upstream)
        try:
            await asyncio.wait_for(translator.translate(self.probe_request), timeout=self.settings.probe_timeout)
        except asyncio.TimeoutError:
            log.debug("upstream is unavailable: probe timed out")
            return False
        except RelayError as exc:
            log.bind(error=exc.message).debug("upstream is unavailable")
            return False
        finally:
            await translator.close()
        log.debug("upstream is alive")
        return True
