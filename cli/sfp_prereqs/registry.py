"""Install the SFP CLI from the private GitHub npm registry.

The registry token only ever lands in a single-use npmrc under the temp
directory, readable by the installing user and removed after the attempt.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from . import console
from .config import LATEST, InstallerSettings
from .errors import InstallError
from .runner import CommandRunner
from .semver import extract_version
from .users import InvokingUser

logger = logging.getLogger(__name__)

NPMRC_PREFIX = "npm."
NPMRC_SUFFIX = ".rc"
NPM_PREFIX_DIRNAME = ".npm-global"


def resolve_package_spec(package: str, version: str | None) -> str:
    value = (version or "").strip()
    if not value or value == LATEST:
        return f"{package}@{LATEST}"
    return f"{package}@{value}"


def npm_prefix(user: InvokingUser) -> Path:
    return user.home / NPM_PREFIX_DIRNAME


def render_npmrc(settings: InstallerSettings, token: str, prefix: Path) -> str:
    lines = [
        f"{settings.package_scope}:registry={settings.registry_url}",
        f"//{settings.registry_host}/:_authToken={token}",
        f"registry={settings.public_registry_url}",
        f"prefix={prefix}",
    ]
    return "\n".join(lines) + "\n"


def _append_line_once(path: Path, line: str, *, present: re.Pattern[str]) -> bool:
    try:
        existing = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        existing = ""
    if present.search(existing):
        return False
    if existing and not existing.endswith("\n"):
        existing += "\n"
    path.write_text(existing + line + "\n", encoding="utf-8")
    return True


def ensure_npm_prefix(user: InvokingUser) -> Path:
    """Point the user's global npm installs at a directory they own.

    Leaves ``prefix=`` in ``~/.npmrc`` and a PATH export in ``~/.profile`` so
    later shells of that user find the installed CLI.
    """
    prefix = npm_prefix(user)
    npmrc = user.home / ".npmrc"
    profile = user.home / ".profile"
    prefix_line = re.compile(rf"^prefix={re.escape(str(prefix))}$", re.M)
    path_line = re.compile(rf"PATH.*{re.escape(f'{prefix}/bin')}")
    try:
        prefix.mkdir(parents=True, exist_ok=True)
        user.chown(prefix, recursive=True)
        if _append_line_once(npmrc, f"prefix={prefix}", present=prefix_line):
            user.chown(npmrc)
        if _append_line_once(profile, f"export PATH={prefix}/bin:$PATH", present=path_line):
            user.chown(profile)
    except OSError as exc:
        raise InstallError(f"Cannot prepare npm prefix in {user.home}: {exc}") from exc
    return prefix


@contextmanager
def temporary_npmrc(content: str, user: InvokingUser, *, tmp_dir: str | None = None) -> Iterator[Path]:
    fd, raw_path = tempfile.mkstemp(prefix=NPMRC_PREFIX, suffix=NPMRC_SUFFIX, dir=tmp_dir)
    path = Path(raw_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(path, 0o600)
        user.chown(path)
        yield path
    finally:
        path.unlink(missing_ok=True)


def install_authenticated(
    runner: CommandRunner,
    user: InvokingUser,
    token: str,
    *,
    version: str | None,
    settings: InstallerSettings,
    tmp_dir: str | None = None,
) -> bool:
    if not token:
        console.err(f"No npm registry token provided. Set {settings.token_env}.")
        return False

    spec = resolve_package_spec(settings.package_name, version)
    console.info(f"Installing {spec}...")
    prefix = ensure_npm_prefix(user)
    content = render_npmrc(settings, token, prefix)
    try:
        with temporary_npmrc(content, user, tmp_dir=tmp_dir) as npmrc:
            cmd = user.command(
                ["npm", "install", "-g", spec],
                env={"NPM_CONFIG_USERCONFIG": str(npmrc)},
            )
            runner.run(cmd)
    except InstallError as exc:
        logger.debug("npm install failed: %s", exc)
        console.err(f"Failed to install {spec}")
        return False
    console.ok(f"Successfully installed {spec}")
    return True


def find_cli(runner: CommandRunner, user: InvokingUser, settings: InstallerSettings) -> str | None:
    found = runner.which(settings.package)
    if found:
        return found
    candidate = npm_prefix(user) / "bin" / settings.package
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate)
    return None


def installed_version(runner: CommandRunner, user: InvokingUser, settings: InstallerSettings) -> str | None:
    path = find_cli(runner, user, settings)
    if not path:
        return None
    output = runner.capture([path, "--version"])
    if output is None:
        return "unknown"
    return extract_version(output) or output


def install_sfp(
    runner: CommandRunner,
    user: InvokingUser,
    token: str,
    *,
    version: str | None,
    settings: InstallerSettings,
) -> bool:
    console.info("Installing/Updating SFP CLI...")
    current = installed_version(runner, user, settings)
    if current:
        console.info(f"Current SFP CLI version: {current}")

    target = resolve_package_spec(settings.package_name, version).rsplit("@", 1)[1]
    if target == LATEST:
        console.info("Target: latest version")
    else:
        console.info(f"Target: version {target}")

    if not install_authenticated(runner, user, token, version=version, settings=settings):
        console.err("Failed to install/update SFP CLI")
        return False

    new = installed_version(runner, user, settings)
    if not new:
        console.warn(f"SFP CLI installed but not found on PATH. Open a new login shell as {user.name}.")
    elif not current:
        console.ok(f"SFP CLI {new} installed")
    elif current != new:
        console.ok(f"SFP CLI updated from {current} to {new}")
    else:
        console.ok(f"SFP CLI version {new} is current")
    return True
