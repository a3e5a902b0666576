from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from .errors import CommandError, UnsupportedOSError
from .osdetect import OsFamily
from .runner import CommandRunner

BASE_PACKAGES = ("curl", "wget", "jq", "git")


class PackageBackend(ABC):
    family: OsFamily
    artifact_ext: str

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @abstractmethod
    def refresh(self) -> None:
        ...

    @abstractmethod
    def install(self, names: Sequence[str]) -> None:
        ...

    @abstractmethod
    def install_local(self, path: Path) -> None:
        """Install a downloaded package file."""


class YumBackend(PackageBackend):
    family = OsFamily.FEDORA
    artifact_ext = "rpm"

    def refresh(self) -> None:
        self.runner.run(["yum", "update", "-y"])

    def install(self, names: Sequence[str]) -> None:
        if not names:
            return
        self.runner.run(["yum", "install", "-y", *names])

    def install_local(self, path: Path) -> None:
        self.runner.run(["rpm", "-i", str(path)])


class AptBackend(PackageBackend):
    family = OsFamily.DEBIAN
    artifact_ext = "deb"
    _env = {"DEBIAN_FRONTEND": "noninteractive"}

    def refresh(self) -> None:
        self.runner.run(["apt-get", "update"], env=self._env)

    def install(self, names: Sequence[str]) -> None:
        if not names:
            return
        self.runner.run(["apt-get", "install", "-y", *names], env=self._env)

    def install_local(self, path: Path) -> None:
        try:
            self.runner.run(["dpkg", "-i", str(path)], env=self._env)
        except CommandError:
            # dpkg leaves missing dependencies unconfigured; apt resolves them
            self.runner.run(["apt-get", "install", "-f", "-y"], env=self._env)


def backend_for(family: OsFamily, runner: CommandRunner) -> PackageBackend:
    if family is OsFamily.FEDORA:
        return YumBackend(runner)
    if family is OsFamily.DEBIAN:
        return AptBackend(runner)
    raise UnsupportedOSError(f"Unsupported OS family: {family.value}")


def bootstrap_base(backend: PackageBackend) -> None:
    backend.refresh()
    backend.install(BASE_PACKAGES)
