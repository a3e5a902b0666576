from __future__ import annotations

import os
import sys
from functools import partial
from typing import Mapping

import typer
from rich.prompt import Confirm

from .. import console
from ..cleanup import install_cleanup_handlers
from ..config import InstallerSettings, RunConfiguration, load_settings
from ..credentials import Credential, persist_registry_credentials, resolve_token, verify_token
from ..errors import CredentialError, InstallError, PrereqError, UnsupportedOSError
from ..logging_ import setup_logging
from ..osdetect import OsFamily, detect_os_family
from ..packages import bootstrap_base
from ..registry import find_cli, install_sfp
from ..runner import CommandRunner
from ..tools import HostContext, prerequisite_installers
from ..users import InvokingUser, resolve_invoking_user
from ..verify import print_verification, verify_installations


def install(
    update: bool = typer.Option(
        False,
        "-u",
        "--update",
        help="Skip prerequisite installation; only install/update the SFP CLI.",
    ),
    version: str = typer.Option(
        "",
        "-v",
        "--version",
        help="SFP CLI version to install (default: latest).",
        show_default=False,
    ),
    persist_credentials: bool = typer.Option(
        False,
        "--persist-credentials",
        help="Save npm registry and ghcr.io credentials for the invoking user.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose logs."),
) -> None:
    """Install SFP prerequisites (Node.js, Docker, Infisical, Supabase) and the SFP CLI."""
    setup_logging(verbose)
    run_cfg = RunConfiguration(
        update_only=update,
        version=version.strip(),
        persist_credentials=persist_credentials,
    )
    install_cleanup_handlers()
    try:
        run(run_cfg)
    except PrereqError as exc:
        console.err(str(exc))
        raise typer.Exit(code=1)


def require_root() -> None:
    if os.geteuid() != 0:
        raise PrereqError("This command must be run as root or with sudo")


def _prompt_token() -> str:
    if not sys.stdin.isatty():
        raise CredentialError("No token in the environment and no terminal to prompt for one")
    return typer.prompt("GitHub token with read:packages scope", hide_input=True, default="", show_default=False)


def _confirm_retry() -> bool:
    return Confirm.ask("Try another token?", default=True)


def resolve_credential(settings: InstallerSettings, environ: Mapping[str, str]) -> Credential:
    return resolve_token(
        environ.get(settings.token_env),
        verify=partial(verify_token, settings=settings),
        prompt=_prompt_token,
        confirm=_confirm_retry,
        max_attempts=settings.max_token_attempts,
    )


def run(
    run_cfg: RunConfiguration,
    *,
    settings: InstallerSettings | None = None,
    runner: CommandRunner | None = None,
    environ: Mapping[str, str] | None = None,
) -> None:
    settings = settings or load_settings()
    runner = runner or CommandRunner()
    environ = os.environ if environ is None else environ

    console.banner("SFP Prerequisites", "Installation Script")
    require_root()

    family = None
    if not run_cfg.update_only:
        family = detect_os_family()
        console.info(f"Detected OS family: {family.value}")
        if family is OsFamily.UNKNOWN:
            raise UnsupportedOSError("Unsupported operating system")

    credential = resolve_credential(settings, environ)
    user = resolve_invoking_user(environ)

    if run_cfg.update_only:
        _install_cli(runner, user, credential, run_cfg, settings)
        return

    host = HostContext.detect(family, runner, settings)
    bootstrap_base(host.backend)
    for installer in prerequisite_installers(host):
        installer.ensure()
    _install_cli(runner, user, credential, run_cfg, settings)

    results = verify_installations(runner, sfp_path=find_cli(runner, user, settings))
    all_ok = print_verification(results)
    if not all_ok:
        raise InstallError("Some tools failed verification")
    console.banner("Installation Complete!", "Get started with: sfp server init --help")


def _install_cli(
    runner: CommandRunner,
    user: InvokingUser,
    credential: Credential,
    run_cfg: RunConfiguration,
    settings: InstallerSettings,
) -> None:
    if not install_sfp(runner, user, credential.token, version=run_cfg.target_version, settings=settings):
        raise InstallError("Failed to install/update SFP CLI")
    if run_cfg.persist_credentials:
        persist_registry_credentials(runner, user, credential, settings=settings)
