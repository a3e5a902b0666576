from __future__ import annotations

import re

_SEMVER_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")
_EMBEDDED_SEMVER_RE = re.compile(r"v?(\d+\.\d+\.\d+)")


def parse_semver(text: str) -> tuple[int, int, int] | None:
    m = _SEMVER_RE.match((text or "").strip())
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def extract_version(output: str | None) -> str | None:
    """First ``x.y.z`` found in a tool's ``--version`` output."""
    m = _EMBEDDED_SEMVER_RE.search(output or "")
    return m.group(1) if m else None


def major_version(output: str | None) -> int | None:
    version = extract_version(output)
    if not version:
        return None
    parsed = parse_semver(version)
    return parsed[0] if parsed else None
