from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from errors import ConfigUnavailable

from .models import Family, Upstream


COMMENT_PREFIXES = ("#", "//")


@dataclass(slots=True)
class ConfiguredUpstreams:
    accounts: List[Upstream] = field(default_factory=list)
    relays: List[Upstream] = field(default_factory=list)

    @property
    def all(self) -> List[Upstream]:
        return [*self.accounts, *self.relays]


def parse_upstreams(lines: Iterable[str]) -> ConfiguredUpstreams:
    """Classify every significant line; raise ConfigUnavailable when none remain."""
    seen: dict[str, Upstream] = {}
    for raw in lines:
        text = raw.strip()
        if not text or text.startswith(COMMENT_PREFIXES):
            continue
        seen.setdefault(text, Upstream.parse(text))

    if not seen:
        raise ConfigUnavailable("upstream list is empty")

    configured = ConfiguredUpstreams()
    for upstream in seen.values():
        if upstream.family is Family.RELAY:
            configured.relays.append(upstream)
        else:
            configured.accounts.append(upstream)
    return configured


def load_upstreams(path: Path) -> ConfiguredUpstreams:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return parse_upstreams(handle)
    except OSError as exc:
        raise ConfigUnavailable(f"cannot read upstream list {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigUnavailable(f"upstream list {path} is not valid UTF-8") from exc
