from __future__ import annotations

import json
from typing import Any

import httpx

from .config_types import ClientConfig
from .errors import ApiError, AuthError, NetworkError

GITHUB_ACCEPT = "application/vnd.github+json"


class Transport:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._cfg = cfg
        headers = {"User-Agent": cfg.user_agent, "Accept": GITHUB_ACCEPT}
        if cfg.token:
            headers["Authorization"] = f"Bearer {cfg.token}"

        self._client = httpx.Client(
            base_url=cfg.base_url.rstrip("/"),
            timeout=cfg.timeout_s,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def request_text(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> str:
        """Perform a request and return the raw response body.

        Callers that only look for markers in the body use this instead of
        decoding JSON, so unexpected response shapes still work.
        """
        try:
            r = self._client.request(method, path, params=params)
        except httpx.RequestError as e:
            raise NetworkError(str(e)) from e

        if r.status_code >= 400:
            msg = f"{method} {path} failed with {r.status_code}"
            details = None
            data: Any = None
            try:
                data = r.json()
            except ValueError:
                pass
            if isinstance(data, dict) and "message" in data:
                details = json.dumps(data, ensure_ascii=False)
                msg = str(data.get("message") or msg)
            elif r.text:
                details = r.text[:1000]

            if r.status_code in (401, 403):
                raise AuthError(r.status_code, msg, details)
            raise ApiError(r.status_code, msg, details)

        return r.text
