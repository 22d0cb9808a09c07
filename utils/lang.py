from __future__ import annotations

import re
from typing import Dict, Pattern


_HAN = "\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\U00020000-\U0002ebef"
_KANA = "\u3040-\u309f\u30a0-\u30ff\u31f0-\u31ff"
_HANGUL = "\u1100-\u11ff\u3130-\u318f\uac00-\ud7af"
_CYRILLIC = "\u0400-\u04ff\u0500-\u052f"
_GREEK = "\u0370-\u03ff\u1f00-\u1fff"
_ARABIC = "\u0600-\u06ff\u0750-\u077f\ufb50-\ufdff\ufe70-\ufeff"
_HEBREW = "\u0590-\u05ff"
_THAI = "\u0e00-\u0e7f"

SCRIPT_PATTERNS: Dict[str, Pattern[str]] = {
    "zh": re.compile(f"[{_HAN}]"),
    "ja": re.compile(f"[{_HAN}{_KANA}]"),
    "ko": re.compile(f"[{_HANGUL}]"),
    "el": re.compile(f"[{_GREEK}]"),
    "he": re.compile(f"[{_HEBREW}]"),
    "th": re.compile(f"[{_THAI}]"),
}
for _code in ("ru", "uk", "bg", "sr", "mk", "be", "kk"):
    SCRIPT_PATTERNS[_code] = re.compile(f"[{_CYRILLIC}]")
for _code in ("ar", "fa"):
    SCRIPT_PATTERNS[_code] = re.compile(f"[{_ARABIC}]")


def primary_subtag(lang: str) -> str:
    return lang.strip().lower().replace("_", "-").split("-", 1)[0]


def expected_script(target_lang: str) -> Pattern[str] | None:
    return SCRIPT_PATTERNS.get(primary_subtag(target_lang))


def looks_translated(text: str, target_lang: str) -> bool:
    """True unless the target has a known script and ``text`` contains none of it."""
    pattern = expected_script(target_lang)
    if pattern is None:
        return True
    return pattern.search(text) is not None
