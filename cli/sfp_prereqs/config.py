from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_config_dir

from . import console

APP_NAME = "sfp-prereqs"
CONFIG_FILENAME = "config.toml"
ENV_CONFIG_PATH = "SFP_PREREQS_CONFIG"
ENV_GITHUB_API_URL = "SFP_PREREQS_GITHUB_API_URL"
LATEST = "latest"


@dataclass(frozen=True)
class InstallerSettings:
    github_api_url: str = "https://api.github.com"
    org: str = "flxbl-io"
    package: str = "sfp"
    package_scope: str = "@flxbl-io"
    registry_url: str = "https://npm.pkg.github.com/"
    public_registry_url: str = "https://registry.npmjs.org/"
    container_registry: str = "ghcr.io"
    token_env: str = "FLXBL_NPM_REGISTRY_KEY"
    node_major: int = 20
    nvm_version: str = "v0.39.7"
    supabase_version: str = "2.0.0"
    max_token_attempts: int = 5

    @property
    def package_name(self) -> str:
        return f"{self.package_scope}/{self.package}"

    @property
    def registry_host(self) -> str:
        parsed = urlparse(self.registry_url)
        return parsed.netloc or self.registry_url.strip("/")


@dataclass(frozen=True)
class RunConfiguration:
    update_only: bool = False
    version: str = ""
    persist_credentials: bool = False

    @property
    def target_version(self) -> str:
        value = (self.version or "").strip()
        return value or LATEST


def config_path() -> str:
    override = os.getenv(ENV_CONFIG_PATH, "").strip()
    if override:
        return override
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    if isinstance(default, int):
        try:
            coerced = int(value)
        except (TypeError, ValueError):
            console.warn(f"Ignoring invalid value for {name}: {value!r}")
            return default
        return coerced if coerced > 0 else default
    text = str(value or "").strip()
    return text or default


def from_toml(data: dict[str, Any]) -> InstallerSettings:
    defaults = InstallerSettings()
    values: dict[str, Any] = {}
    for f in fields(InstallerSettings):
        if f.name not in data:
            continue
        values[f.name] = _coerce(f.name, data[f.name], getattr(defaults, f.name))
    if "github_api_url" in values:
        values["github_api_url"] = values["github_api_url"].rstrip("/")
    return InstallerSettings(**values)


def load_settings() -> InstallerSettings:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        settings = from_toml(data)
    except FileNotFoundError:
        settings = InstallerSettings()
    except tomllib.TOMLDecodeError as exc:
        console.warn(f"Ignoring unreadable config {path}: {exc}")
        settings = InstallerSettings()
    return _apply_env_overrides(settings)


def _apply_env_overrides(settings: InstallerSettings) -> InstallerSettings:
    api_url = os.getenv(ENV_GITHUB_API_URL, "").strip()
    if not api_url:
        return settings
    return replace(settings, github_api_url=api_url.rstrip("/"))
