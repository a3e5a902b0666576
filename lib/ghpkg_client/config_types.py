from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    token: str | None = field(default=None, repr=False)
    timeout_s: float = 15.0
    user_agent: str = "sfp-prereqs/0.1.0"
