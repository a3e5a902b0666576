from __future__ import annotations

from typing import Sequence


class PrereqError(Exception):
    """Base error for anything that aborts an installation run."""


class UnsupportedOSError(PrereqError):
    pass


class CredentialError(PrereqError):
    pass


class InstallError(PrereqError):
    pass


class CommandError(InstallError):
    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str | None = None):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        msg = f"Command failed with exit code {returncode}: {self.cmd[0] if self.cmd else '?'}"
        if self.stderr:
            msg = f"{msg} ({self.stderr.splitlines()[-1]})"
        super().__init__(msg)


class DownloadError(InstallError):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Download failed: {url} ({reason})")
