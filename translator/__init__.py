"""
Relay translation adapters and dispatch.

Adapters:
- DeepL API (account family, Free and Pro plans)
- DeepLX relay (relay family)
- Google Translate (verification fallback)
"""
from .base import BaseTranslator, TranslationRequest, TranslationResult
from .deepl_api import DeepLAPITranslator
from .deeplx import DeepLXTranslator
from .google import GoogleTranslator
from .factory import build_fallback_translator, build_translator, make_translator_factory
from .dispatcher import Dispatcher

__all__ = [
    "BaseTranslator",
    "TranslationRequest",
    "TranslationResult",
    "DeepLAPITranslator",
    "DeepLXTranslator",
    "GoogleTranslator",
    "build_translator",
    "build_fallback_translator",
    "make_translator_factory",
    "Dispatcher",
]
