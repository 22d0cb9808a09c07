from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os


DEFAULT_UPSTREAMS_PATH = Path("apis.txt")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value) if value else None


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    return int(value)


@dataclass(slots=True)
class DispatchPolicy:
    verify_completeness: bool = field(default_factory=lambda: _env_flag("DEEPL_RELAY_VERIFY"))
    request_timeout: float = 10.0
    # None keeps retrying until the pool is exhausted
    max_attempts: int | None = field(default_factory=lambda: _env_optional_int("DEEPL_RELAY_MAX_ATTEMPTS"))


@dataclass(slots=True)
class ProbeSettings:
    probe_timeout: float = 5.0
    refresh_interval: float = field(default_factory=lambda: float(os.getenv("DEEPL_RELAY_REFRESH_INTERVAL", "3600")))
    text: str = "test"
    source_lang: str = "en"
    target_lang: str = "zh"


@dataclass(slots=True)
class EndpointSettings:
    deepl_api_url: str = field(default_factory=lambda: os.getenv("DEEPL_API_URL", "https://api.deepl.com/v2/translate"))
    deepl_free_api_url: str = field(default_factory=lambda: os.getenv("DEEPL_API_FREE_URL", "https://api-free.deepl.com/v2/translate"))
    google_url: str = field(default_factory=lambda: os.getenv("GOOGLE_TRANSLATE_URL", "https://translate.googleapis.com/translate_a/single"))
    relay_timeout: float = 5.0
    proxy_url: str | None = field(default_factory=lambda: os.getenv("DEEPL_RELAY_PROXY"))


@dataclass(slots=True)
class AppSettings:
    dispatch: DispatchPolicy = field(default_factory=DispatchPolicy)
    probe: ProbeSettings = field(default_factory=ProbeSettings)
    endpoints: EndpointSettings = field(default_factory=EndpointSettings)
    upstreams_path: Path = field(default_factory=lambda: Path(os.getenv("DEEPL_RELAY_UPSTREAMS", DEFAULT_UPSTREAMS_PATH)))
    host: str = field(default_factory=lambda: os.getenv("DEEPL_RELAY_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("DEEPL_RELAY_PORT", "9000")))
    json_logs: bool = field(default_factory=lambda: _env_flag("DEEPL_RELAY_JSON_LOGS"))
    debug: bool = field(default_factory=lambda: _env_flag("DEEPL_RELAY_DEBUG"))
    log_file: Path | None = field(default_factory=lambda: _env_path("DEEPL_RELAY_LOG_FILE"))


SETTINGS = AppSettings()
