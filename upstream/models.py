from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


FREE_TIER_SUFFIX = ":fx"


class Family(str, Enum):
    ACCOUNT = "account"
    RELAY = "relay"


@dataclass(frozen=True, slots=True)
class Upstream:
    """One configured upstream, identified by its literal token.

    Accounts are DeepL API credentials; relays are URLs of peer services
    speaking the same protocol this relay exposes.
    """

    token: str
    family: Family

    @classmethod
    def parse(cls, token: str) -> "Upstream":
        token = token.strip()
        family = Family.RELAY if token.startswith("http") else Family.ACCOUNT
        return cls(token=token, family=family)

    @property
    def is_free_tier(self) -> bool:
        return self.family is Family.ACCOUNT and self.token.endswith(FREE_TIER_SUFFIX)

    @property
    def label(self) -> str:
        """Log-safe name: relays are shown in full, credentials are masked."""
        if self.family is Family.RELAY:
            return self.token
        if len(self.token) <= 8:
            return "***"
        return f"{self.token[:4]}***{self.token[-4:]}"

    def __str__(self) -> str:
        return self.label
