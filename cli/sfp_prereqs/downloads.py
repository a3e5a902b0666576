from __future__ import annotations

import logging
from pathlib import Path

import httpx

from .errors import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def fetch_text(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    logger.debug("GET %s", url)
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        raise DownloadError(url, str(exc)) from exc
    return resp.text


def download_file(url: str, dest: Path, *, timeout: float = DEFAULT_TIMEOUT) -> None:
    logger.debug("GET %s -> %s", url, dest)
    try:
        with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as resp:
            resp.raise_for_status()
            with dest.open("wb") as f:
                for chunk in resp.iter_bytes():
                    if not chunk:
                        continue
                    f.write(chunk)
    except httpx.HTTPError as exc:
        raise DownloadError(url, str(exc)) from exc
