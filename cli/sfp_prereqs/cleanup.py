from __future__ import annotations

import atexit
import logging
import signal
import tempfile
import time
from pathlib import Path

from .registry import NPMRC_PREFIX, NPMRC_SUFFIX

logger = logging.getLogger(__name__)

FRESHNESS_SECONDS = 5 * 60

_installed = False


def remove_recent_npmrc_files(
    tmp_dir: str | Path | None = None,
    *,
    max_age: float = FRESHNESS_SECONDS,
    now: float | None = None,
) -> list[Path]:
    """Delete temporary registry npmrc files modified within ``max_age`` seconds."""
    base = Path(tmp_dir or tempfile.gettempdir())
    now = time.time() if now is None else now
    removed: list[Path] = []
    for path in base.glob(f"{NPMRC_PREFIX}*{NPMRC_SUFFIX}"):
        try:
            if not path.is_file() or now - path.stat().st_mtime > max_age:
                continue
            path.unlink()
        except FileNotFoundError:
            continue
        removed.append(path)
    if removed:
        logger.debug("Removed leftover npmrc files: %s", ", ".join(str(p) for p in removed))
    return removed


def _on_signal(signum: int, _frame) -> None:
    remove_recent_npmrc_files()
    raise SystemExit(128 + signum)


def install_cleanup_handlers() -> None:
    global _installed
    if _installed:
        return
    atexit.register(remove_recent_npmrc_files)
    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)
    _installed = True
