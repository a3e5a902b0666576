"""Host OS detection.

Only two families are supported: RedHat-like hosts (yum) are reported as
``fedora`` and Debian-like hosts (apt) as ``debian``.
"""

from __future__ import annotations

import platform
from enum import Enum
from pathlib import Path


class OsFamily(str, Enum):
    FEDORA = "fedora"
    DEBIAN = "debian"
    UNKNOWN = "unknown"


_FEDORA_MARKERS = ("etc/redhat-release", "etc/system-release")
_DEBIAN_MARKERS = ("etc/debian_version",)

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def detect_os_family(root: str | Path = "/") -> OsFamily:
    base = Path(root)
    if any((base / marker).is_file() for marker in _FEDORA_MARKERS):
        return OsFamily.FEDORA
    if any((base / marker).is_file() for marker in _DEBIAN_MARKERS):
        return OsFamily.DEBIAN
    return OsFamily.UNKNOWN


def read_os_release(root: str | Path = "/") -> dict[str, str]:
    path = Path(root) / "etc" / "os-release"
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    data: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def is_amazon_linux(root: str | Path = "/") -> bool:
    try:
        text = (Path(root) / "etc" / "system-release").read_text(encoding="utf-8")
    except OSError:
        return False
    return "Amazon Linux" in text


def is_amazon_linux_2(os_release: dict[str, str]) -> bool:
    return os_release.get("ID") == "amzn" and os_release.get("VERSION_ID") == "2"


def machine_arch(machine: str | None = None) -> str:
    raw = (machine or platform.machine()).lower()
    return _ARCH_ALIASES.get(raw, raw)
