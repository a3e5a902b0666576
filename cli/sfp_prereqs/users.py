from __future__ import annotations

import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence


@dataclass(frozen=True)
class InvokingUser:
    """The operator behind ``sudo``.

    ``elevated`` is set when this process runs as root on behalf of another
    user; commands built by :meth:`command` then drop privileges to that user.
    """

    name: str
    home: Path
    uid: int
    gid: int
    elevated: bool = False

    def command(self, cmd: Sequence[str], *, env: Mapping[str, str] | None = None) -> list[str]:
        prefix = ["env", *(f"{k}={v}" for k, v in env.items())] if env else []
        if self.elevated:
            return ["sudo", "-u", self.name, "-H", *prefix, *cmd]
        return [*prefix, *cmd]

    def chown(self, path: Path, *, recursive: bool = False) -> None:
        if not self.elevated:
            return
        os.chown(path, self.uid, self.gid)
        if recursive and path.is_dir():
            for dirpath, dirnames, filenames in os.walk(path):
                for name in dirnames + filenames:
                    os.chown(os.path.join(dirpath, name), self.uid, self.gid, follow_symlinks=False)


def resolve_invoking_user(environ: Mapping[str, str] | None = None) -> InvokingUser:
    environ = os.environ if environ is None else environ
    sudo_user = (environ.get("SUDO_USER") or "").strip()
    if os.geteuid() == 0 and sudo_user and sudo_user != "root":
        entry = pwd.getpwnam(sudo_user)
        elevated = True
    else:
        entry = pwd.getpwuid(os.geteuid())
        elevated = False
    return InvokingUser(
        name=entry.pw_name,
        home=Path(entry.pw_dir),
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        elevated=elevated,
    )
