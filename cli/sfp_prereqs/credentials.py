from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from ghpkg_client import ApiError, AuthError, ClientConfig, GitHubClient, NetworkError
from ghpkg_client.client import login_from_body

from . import console
from .config import InstallerSettings
from .errors import CredentialError, InstallError
from .logging_ import redact_secret
from .runner import CommandRunner
from .users import InvokingUser

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ClientConfig], GitHubClient]

LOGIN_MARKER = '"login"'


@dataclass(frozen=True)
class TokenCheck:
    ok: bool
    reason: str = ""
    login: str | None = None


@dataclass(frozen=True)
class Credential:
    token: str = field(repr=False)
    login: str | None = None


class TokenState(str, Enum):
    NEED_TOKEN = "need_token"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    RETRY = "retry"
    ABORT = "abort"


def _fetch(label: str, call: Callable[[], str]) -> str | None:
    try:
        return call()
    except AuthError as exc:
        logger.debug("%s rejected: HTTP %s %s", label, exc.status_code, exc)
        console.err(f"{label}: token rejected (HTTP {exc.status_code})")
    except ApiError as exc:
        console.err(f"{label}: HTTP {exc.status_code} {exc}")
    except NetworkError as exc:
        console.err(f"{label}: GitHub API unreachable ({exc})")
    return None


def verify_token(
    token: str,
    *,
    settings: InstallerSettings,
    client_factory: ClientFactory = GitHubClient,
) -> TokenCheck:
    """Check that ``token`` is valid and can read the SFP package.

    Transport failures and authorization failures both come back as a failed
    check; only the printed message tells them apart. The package check is a
    plain substring match on the listing body.
    """
    console.info("Verifying GitHub token...")
    if not token:
        console.err(f"GitHub token not provided. Set {settings.token_env} or enter it when prompted.")
        return TokenCheck(ok=False, reason="token required")

    logger.debug("Verifying token %s against %s", redact_secret(token), settings.github_api_url)
    with client_factory(ClientConfig(base_url=settings.github_api_url, token=token)) as client:
        body = _fetch("Identity check", client.user_raw)
        if body is None or LOGIN_MARKER not in body:
            console.err("Invalid GitHub token")
            return TokenCheck(ok=False, reason="identity check failed")
        login = login_from_body(body)

        listing = _fetch(
            "Package access check",
            lambda: client.org_packages_raw(settings.org, package_type="npm"),
        )
        if listing is None or settings.package not in listing:
            console.err("GitHub token lacks package access permissions")
            return TokenCheck(ok=False, reason="package access check failed", login=login)

    console.ok("GitHub token verified - has package access")
    return TokenCheck(ok=True, login=login)


def resolve_token(
    env_token: str | None,
    *,
    verify: Callable[[str], TokenCheck],
    prompt: Callable[[], str],
    confirm: Callable[[], bool],
    max_attempts: int,
) -> Credential:
    """Return a verified credential.

    A token from the environment gets exactly one verification. Otherwise the
    operator is prompted until a token verifies, they decline to retry, or
    ``max_attempts`` prompts have been used.
    """
    if env_token and env_token.strip():
        token = env_token.strip()
        check = verify(token)
        if not check.ok:
            raise CredentialError(f"Invalid or missing GitHub token ({check.reason})")
        return Credential(token=token, login=check.login)

    state = TokenState.NEED_TOKEN
    attempts = 0
    token = ""
    check = TokenCheck(ok=False)
    while True:
        if state is TokenState.NEED_TOKEN:
            token = (prompt() or "").strip()
            attempts += 1
            state = TokenState.VERIFYING
        elif state is TokenState.VERIFYING:
            check = verify(token)
            if check.ok:
                state = TokenState.VERIFIED
            elif not token and attempts < max_attempts:
                state = TokenState.NEED_TOKEN
            else:
                state = TokenState.RETRY
        elif state is TokenState.RETRY:
            if attempts >= max_attempts:
                console.err(f"Giving up after {attempts} attempts.")
                state = TokenState.ABORT
            elif confirm():
                state = TokenState.NEED_TOKEN
            else:
                state = TokenState.ABORT
        elif state is TokenState.VERIFIED:
            return Credential(token=token, login=check.login)
        else:
            raise CredentialError("A valid GitHub token is required to continue")


def _write_private(path: Path, text: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # an existing file keeps its old mode through os.open
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)


def _replace_npmrc_entries(text: str, entries: dict[str, str]) -> str:
    keep = []
    for line in text.splitlines():
        key = line.split("=", 1)[0].strip()
        if key in entries:
            continue
        keep.append(line)
    keep.extend(f"{key}={value}" for key, value in entries.items())
    return "\n".join(keep) + "\n"


def persist_registry_credentials(
    runner: CommandRunner,
    user: InvokingUser,
    credential: Credential,
    *,
    settings: InstallerSettings,
) -> None:
    """Store registry access for ``user`` so later npm/docker calls work.

    Writes the scoped registry and auth token to ``~/.npmrc`` and logs docker
    into the container registry when docker is available.
    """
    npmrc = user.home / ".npmrc"
    entries = {
        f"{settings.package_scope}:registry": settings.registry_url,
        f"//{settings.registry_host}/:_authToken": credential.token,
    }
    try:
        existing = npmrc.read_text(encoding="utf-8") if npmrc.exists() else ""
        _write_private(npmrc, _replace_npmrc_entries(existing, entries))
        user.chown(npmrc)
    except OSError as exc:
        raise InstallError(f"Cannot write registry credentials to {npmrc}: {exc}") from exc
    console.ok(f"Registry credentials saved to {npmrc}")

    if not credential.login:
        console.warn("GitHub login unknown; skipping container registry login.")
        return
    if runner.which("docker") is None:
        console.warn("Docker not found; skipping container registry login.")
        return
    registry = settings.container_registry
    runner.run(
        user.command(["docker", "login", registry, "-u", credential.login, "--password-stdin"]),
        input=credential.token,
    )
    console.ok(f"Docker login succeeded for {registry}.")

