from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from typing import Mapping, Sequence

from .errors import CommandError

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs host commands for the installers.

    Secrets are only ever passed through ``input`` (stdin) or files, so the
    argv logged here is safe to print.
    """

    def run(
        self,
        cmd: Sequence[str],
        *,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        logger.debug("$ %s", shlex.join(cmd))
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)
        try:
            result = subprocess.run(
                list(cmd),
                input=input,
                env=full_env,
                text=True,
                capture_output=capture,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError(cmd, 127, str(exc)) from exc
        if check and result.returncode != 0:
            raise CommandError(cmd, result.returncode, result.stderr if capture else None)
        return result

    def capture(self, cmd: Sequence[str]) -> str | None:
        """Combined output of a probe command, or None when it fails."""
        try:
            result = self.run(cmd, capture=True, check=False)
        except CommandError:
            return None
        if result.returncode != 0:
            return None
        return ((result.stdout or "") + (result.stderr or "")).strip()

    def which(self, name: str) -> str | None:
        return shutil.which(name)
