"""Idempotent installers for the prerequisite tools.

Each installer probes for an existing installation first and only runs the
OS-specific install sequence when the tool is missing or too old.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from . import console, downloads
from .config import InstallerSettings
from .errors import InstallError, UnsupportedOSError
from .osdetect import OsFamily, is_amazon_linux, is_amazon_linux_2, machine_arch, read_os_release
from .packages import PackageBackend, backend_for
from .runner import CommandRunner
from .semver import major_version

_COMPOSE_ARCH = {"amd64": "x86_64", "arm64": "aarch64"}


class InstallOutcome(str, Enum):
    ALREADY_SATISFIED = "already_satisfied"
    INSTALLED = "installed"


@dataclass
class HostContext:
    family: OsFamily
    backend: PackageBackend
    runner: CommandRunner
    settings: InstallerSettings
    arch: str
    os_release: dict[str, str] = field(default_factory=dict)
    amazon_linux: bool = False

    @classmethod
    def detect(cls, family: OsFamily, runner: CommandRunner, settings: InstallerSettings) -> "HostContext":
        return cls(
            family=family,
            backend=backend_for(family, runner),
            runner=runner,
            settings=settings,
            arch=machine_arch(),
            os_release=read_os_release(),
            amazon_linux=is_amazon_linux(),
        )

    @property
    def runtime_via_nvm(self) -> bool:
        # NodeSource builds need a newer glibc than Amazon Linux 2 ships on arm64
        return self.arch == "arm64" and is_amazon_linux_2(self.os_release)

    def run_script(self, url: str, *args: str, env: dict[str, str] | None = None) -> None:
        script = downloads.fetch_text(url)
        self.runner.run(["bash", "-s", "--", *args], input=script, env=env)


class ToolInstaller:
    name: str = ""
    command: str = ""
    version_args: tuple[str, ...] = ("--version",)

    def __init__(self, host: HostContext):
        self.host = host

    @property
    def runner(self) -> CommandRunner:
        return self.host.runner

    def installed(self) -> bool:
        return self.runner.which(self.command) is not None

    def satisfied(self) -> bool:
        return self.installed()

    def current_version(self) -> str | None:
        return self.runner.capture([self.command, *self.version_args])

    def ensure(self) -> InstallOutcome:
        console.info(f"Installing {self.name}...")
        if self.satisfied():
            console.ok(f"{self.name} already installed")
            return InstallOutcome.ALREADY_SATISFIED
        if self.host.family is OsFamily.FEDORA:
            self.install_fedora()
        elif self.host.family is OsFamily.DEBIAN:
            self.install_debian()
        else:
            raise UnsupportedOSError(f"Unsupported OS family: {self.host.family.value}")
        console.ok(f"{self.name} installed")
        return InstallOutcome.INSTALLED

    def install_fedora(self) -> None:
        raise NotImplementedError

    def install_debian(self) -> None:
        raise NotImplementedError


class NodeInstaller(ToolInstaller):
    name = "Node.js"
    command = "node"
    NVM_DIR = Path("/usr/local/nvm")
    SYSTEM_BIN_DIR = Path("/usr/local/bin")
    _LINKED_BINARIES = ("node", "npm", "npx")

    @property
    def min_major(self) -> int:
        return self.host.settings.node_major

    def satisfied(self) -> bool:
        if not self.installed():
            return False
        major = major_version(self.current_version())
        if major is None or major < self.min_major:
            console.warn(f"Node.js {major or 'unknown'} is older than {self.min_major}; upgrading")
            return False
        return True

    def ensure(self) -> InstallOutcome:
        outcome = super().ensure()
        if outcome is InstallOutcome.INSTALLED:
            if not self.satisfied():
                raise InstallError(f"Node.js still below {self.min_major} after install")
            console.info(f"Node.js {self.current_version()} is active")
        return outcome

    def install_fedora(self) -> None:
        if self.host.runtime_via_nvm:
            self._install_with_nvm()
            return
        self.host.run_script(f"https://rpm.nodesource.com/setup_{self.min_major}.x")
        self.host.backend.install(["nodejs"])

    def install_debian(self) -> None:
        self.host.run_script(f"https://deb.nodesource.com/setup_{self.min_major}.x")
        self.host.backend.install(["nodejs"])

    def _install_with_nvm(self) -> None:
        nvm_version = self.host.settings.nvm_version
        nvm_dir = self.NVM_DIR
        nvm_dir.mkdir(parents=True, exist_ok=True)
        env = {"NVM_DIR": str(nvm_dir), "PROFILE": "/dev/null"}
        self.host.run_script(
            f"https://raw.githubusercontent.com/nvm-sh/nvm/{nvm_version}/install.sh",
            env=env,
        )
        result = self.runner.run(
            ["bash", "-c", f'. "$NVM_DIR/nvm.sh" && nvm install {self.min_major} >&2 && nvm which {self.min_major}'],
            env=env,
            capture=True,
        )
        node_path = (result.stdout or "").strip().splitlines()
        if not node_path:
            raise InstallError("nvm did not report an installed Node.js binary")
        self._link_into_system_path(Path(node_path[-1]).parent)

    def _link_into_system_path(self, bin_dir: Path) -> None:
        self.SYSTEM_BIN_DIR.mkdir(parents=True, exist_ok=True)
        for binary in self._LINKED_BINARIES:
            source = bin_dir / binary
            if not source.exists():
                raise InstallError(f"Expected {source} after nvm install")
            target = self.SYSTEM_BIN_DIR / binary
            if target.is_symlink() or target.exists():
                target.unlink()
            target.symlink_to(source)


class DockerInstaller(ToolInstaller):
    name = "Docker"
    command = "docker"
    KEYRING_DIR = Path("/etc/apt/keyrings")
    SOURCES_LIST = Path("/etc/apt/sources.list.d/docker.list")
    CLI_PLUGINS_DIR = Path("/usr/local/lib/docker/cli-plugins")
    DEBIAN_PACKAGES = (
        "docker-ce",
        "docker-ce-cli",
        "containerd.io",
        "docker-buildx-plugin",
        "docker-compose-plugin",
    )

    def install_fedora(self) -> None:
        if self.host.amazon_linux and is_amazon_linux_2(self.host.os_release):
            self.runner.run(["amazon-linux-extras", "install", "docker", "-y"])
        else:
            self.host.backend.install(["docker"])
        self.runner.run(["systemctl", "start", "docker"])
        self.runner.run(["systemctl", "enable", "docker"])
        self._install_compose_plugin()

    def install_debian(self) -> None:
        backend = self.host.backend
        backend.refresh()
        backend.install(["ca-certificates", "curl", "gnupg"])
        distro = self._apt_distro()
        self.KEYRING_DIR.mkdir(parents=True, exist_ok=True)
        os.chmod(self.KEYRING_DIR, 0o755)
        keyring = self.KEYRING_DIR / "docker.asc"
        downloads.download_file(f"https://download.docker.com/linux/{distro}/gpg", keyring)
        os.chmod(keyring, 0o644)
        self.SOURCES_LIST.parent.mkdir(parents=True, exist_ok=True)
        self.SOURCES_LIST.write_text(self.render_sources_line(keyring, distro) + "\n", encoding="utf-8")
        backend.refresh()
        backend.install(self.DEBIAN_PACKAGES)

    def render_sources_line(self, keyring: Path, distro: str) -> str:
        dpkg_arch = self.runner.capture(["dpkg", "--print-architecture"]) or self.host.arch
        release = self.host.os_release
        codename = release.get("VERSION_CODENAME")
        if distro == "ubuntu":
            # derivatives such as Mint carry their own VERSION_CODENAME
            codename = release.get("UBUNTU_CODENAME") or codename
        if not codename:
            raise InstallError("Cannot determine distribution codename from /etc/os-release")
        return (
            f"deb [arch={dpkg_arch} signed-by={keyring}] "
            f"https://download.docker.com/linux/{distro} {codename} stable"
        )

    def _apt_distro(self) -> str:
        return "debian" if self.host.os_release.get("ID") == "debian" else "ubuntu"

    def _install_compose_plugin(self) -> None:
        arch = _COMPOSE_ARCH.get(self.host.arch, self.host.arch)
        self.CLI_PLUGINS_DIR.mkdir(parents=True, exist_ok=True)
        plugin = self.CLI_PLUGINS_DIR / "docker-compose"
        downloads.download_file(
            f"https://github.com/docker/compose/releases/latest/download/docker-compose-linux-{arch}",
            plugin,
        )
        os.chmod(plugin, 0o755)


class InfisicalInstaller(ToolInstaller):
    name = "Infisical CLI"
    command = "infisical"
    _SETUP_URL = "https://dl.cloudsmith.io/public/infisical/infisical-cli/setup.{ext}.sh"

    def install_fedora(self) -> None:
        self.host.run_script(self._SETUP_URL.format(ext="rpm"))
        self.host.backend.install(["infisical"])

    def install_debian(self) -> None:
        self.host.run_script(self._SETUP_URL.format(ext="deb"))
        self.host.backend.refresh()
        self.host.backend.install(["infisical"])


class SupabaseInstaller(ToolInstaller):
    name = "Supabase CLI"
    command = "supabase"

    def release_url(self) -> str:
        version = self.host.settings.supabase_version
        ext = self.host.backend.artifact_ext
        return (
            f"https://github.com/supabase/cli/releases/download/v{version}/"
            f"supabase_{version}_linux_{self.host.arch}.{ext}"
        )

    def install_fedora(self) -> None:
        self._install_release_artifact()

    def install_debian(self) -> None:
        self._install_release_artifact()

    def _install_release_artifact(self) -> None:
        fd, raw_path = tempfile.mkstemp(prefix="supabase.", suffix=f".{self.host.backend.artifact_ext}")
        os.close(fd)
        artifact = Path(raw_path)
        try:
            downloads.download_file(self.release_url(), artifact)
            self.host.backend.install_local(artifact)
        finally:
            artifact.unlink(missing_ok=True)


def prerequisite_installers(host: HostContext) -> list[ToolInstaller]:
    return [
        NodeInstaller(host),
        DockerInstaller(host),
        InfisicalInstaller(host),
        SupabaseInstaller(host),
    ]
