from __future__ import annotations

import json

import httpx

from .config_types import ClientConfig
from .transport import Transport


class GitHubClient:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._t = Transport(cfg, transport=transport)

    def close(self) -> None:
        self._t.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def user_raw(self) -> str:
        """Body of ``GET /user`` for the authenticated token."""
        return self._t.request_text("GET", "/user")

    def org_packages_raw(self, org: str, *, package_type: str = "npm") -> str:
        """Body of the organisation package listing for one package type."""
        return self._t.request_text("GET", f"/orgs/{org}/packages", params={"package_type": package_type})


def login_from_body(body: str) -> str | None:
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict):
        login = data.get("login")
        if isinstance(login, str) and login:
            return login
    return None
