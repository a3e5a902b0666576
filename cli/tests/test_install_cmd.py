from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from sfp_prereqs.commands import install_cmd
from sfp_prereqs.credentials import TokenCheck
from sfp_prereqs.main import app
from sfp_prereqs.osdetect import OsFamily
from sfp_prereqs.users import InvokingUser
from sfp_prereqs.verify import VerificationResult

TOKEN_ENV = "FLXBL_NPM_REGISTRY_KEY"


class _FakeInstaller:
    def __init__(self, name: str, events: list) -> None:
        self.name = name
        self.events = events

    def ensure(self):
        self.events.append(("ensure", self.name))


@pytest.fixture
def host(monkeypatch, tmp_path):
    """Patch every side-effecting seam of the install command and record calls."""
    events: list = []
    monkeypatch.setenv("SFP_PREREQS_CONFIG", str(tmp_path / "missing.toml"))
    monkeypatch.setenv(TOKEN_ENV, "ghp_env")
    monkeypatch.setattr(install_cmd, "install_cleanup_handlers", lambda: None)
    monkeypatch.setattr(install_cmd.os, "geteuid", lambda: 0)
    monkeypatch.setattr(install_cmd, "detect_os_family", lambda: events.append(("detect",)) or OsFamily.DEBIAN)

    def _verify(token, *, settings):
        events.append(("verify", token))
        return TokenCheck(ok=token in ("ghp_env", "ghp_typed"), login="octo")

    monkeypatch.setattr(install_cmd, "verify_token", _verify)
    monkeypatch.setattr(
        install_cmd,
        "resolve_invoking_user",
        lambda environ: InvokingUser(name="operator", home=tmp_path, uid=1000, gid=1000, elevated=True),
    )
    monkeypatch.setattr(
        install_cmd.HostContext,
        "detect",
        classmethod(lambda cls, family, runner, settings: SimpleNamespace(family=family, backend="apt")),
    )
    monkeypatch.setattr(install_cmd, "bootstrap_base", lambda backend: events.append(("bootstrap", backend)))
    monkeypatch.setattr(
        install_cmd,
        "prerequisite_installers",
        lambda host: [_FakeInstaller(n, events) for n in ("Node.js", "Docker", "Infisical CLI", "Supabase CLI")],
    )

    def _install_sfp(runner, user, token, *, version, settings):
        events.append(("install_sfp", token, version))
        return state.install_ok

    monkeypatch.setattr(install_cmd, "install_sfp", _install_sfp)
    monkeypatch.setattr(
        install_cmd,
        "persist_registry_credentials",
        lambda runner, user, credential, *, settings: events.append(("persist", credential.login)),
    )
    monkeypatch.setattr(install_cmd, "find_cli", lambda runner, user, settings: "/home/operator/.npm-global/bin/sfp")

    def _verify_installations(runner, *, sfp_path):
        events.append(("verify_installations", sfp_path))
        return [VerificationResult(name="SFP CLI", ok=state.verify_ok, output="1.2.3")]

    monkeypatch.setattr(install_cmd, "verify_installations", _verify_installations)

    state = SimpleNamespace(events=events, install_ok=True, verify_ok=True)
    return state


def _names(events) -> list[str]:
    return [e[0] for e in events]


def test_help_lists_options(host) -> None:
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "--update" in result.output
    assert "--version" in result.output
    assert host.events == []


def test_version_requires_a_value(host) -> None:
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 2
    assert host.events == []


def test_unknown_flag_is_a_usage_error(host) -> None:
    result = CliRunner().invoke(app, ["--frobnicate"])
    assert result.exit_code == 2
    assert host.events == []


def test_update_only_installs_requested_version(host) -> None:
    result = CliRunner().invoke(app, ["--update", "--version", "1.2.3"])

    assert result.exit_code == 0, result.output
    assert host.events == [("verify", "ghp_env"), ("install_sfp", "ghp_env", "1.2.3")]


def test_short_flags(host) -> None:
    result = CliRunner().invoke(app, ["-u", "-v", "2.0.0"])
    assert result.exit_code == 0, result.output
    assert host.events[-1] == ("install_sfp", "ghp_env", "2.0.0")


def test_requires_root(host, monkeypatch) -> None:
    monkeypatch.setattr(install_cmd.os, "geteuid", lambda: 1000)
    result = CliRunner().invoke(app, [])
    assert result.exit_code == 1
    assert "must be run as root" in result.output
    assert host.events == []


def test_unknown_os_stops_before_token_checks(host, monkeypatch) -> None:
    monkeypatch.setattr(install_cmd, "detect_os_family", lambda: OsFamily.UNKNOWN)
    result = CliRunner().invoke(app, [])
    assert result.exit_code == 1
    assert "Unsupported operating system" in result.output
    assert host.events == []


def test_invalid_env_token_is_fatal(host, monkeypatch) -> None:
    monkeypatch.setenv(TOKEN_ENV, "ghp_revoked")
    monkeypatch.setattr(install_cmd, "_prompt_token", lambda: pytest.fail("must not prompt"))
    result = CliRunner().invoke(app, ["--update"])
    assert result.exit_code == 1
    assert "install_sfp" not in _names(host.events)


def test_two_bad_tokens_then_decline_installs_nothing(host, monkeypatch) -> None:
    monkeypatch.delenv(TOKEN_ENV)
    typed = iter(["bad-1", "bad-2"])
    answers = iter([True, False])
    monkeypatch.setattr(install_cmd, "_prompt_token", lambda: next(typed))
    monkeypatch.setattr(install_cmd, "_confirm_retry", lambda: next(answers))

    result = CliRunner().invoke(app, [])

    assert result.exit_code == 1
    assert host.events == [("detect",), ("verify", "bad-1"), ("verify", "bad-2")]


def test_prompted_token_is_used_for_install(host, monkeypatch) -> None:
    monkeypatch.delenv(TOKEN_ENV)
    monkeypatch.setattr(install_cmd, "_prompt_token", lambda: "ghp_typed")
    result = CliRunner().invoke(app, ["--update"])
    assert result.exit_code == 0, result.output
    assert host.events[-1] == ("install_sfp", "ghp_typed", "latest")


def test_full_install_runs_in_order(host) -> None:
    result = CliRunner().invoke(app, [])

    assert result.exit_code == 0, result.output
    assert host.events == [
        ("detect",),
        ("verify", "ghp_env"),
        ("bootstrap", "apt"),
        ("ensure", "Node.js"),
        ("ensure", "Docker"),
        ("ensure", "Infisical CLI"),
        ("ensure", "Supabase CLI"),
        ("install_sfp", "ghp_env", "latest"),
        ("verify_installations", "/home/operator/.npm-global/bin/sfp"),
    ]
    assert "Installation Complete!" in result.output
    assert "sfp server init --help" in result.output


def test_sfp_install_failure_exits_nonzero(host) -> None:
    host.install_ok = False
    result = CliRunner().invoke(app, [])
    assert result.exit_code == 1
    assert "verify_installations" not in _names(host.events)


def test_failed_verification_exits_nonzero(host) -> None:
    host.verify_ok = False
    result = CliRunner().invoke(app, [])
    assert result.exit_code == 1
    assert "Installation Complete!" not in result.output


def test_persist_credentials_flag(host) -> None:
    result = CliRunner().invoke(app, ["--update", "--persist-credentials"])
    assert result.exit_code == 0, result.output
    assert host.events[-1] == ("persist", "octo")


def test_credentials_not_persisted_by_default(host) -> None:
    CliRunner().invoke(app, ["--update"])
    assert "persist" not in _names(host.events)


def test_prompt_refuses_without_terminal(monkeypatch) -> None:
    monkeypatch.setattr(install_cmd.sys, "stdin", SimpleNamespace(isatty=lambda: False))
    with pytest.raises(install_cmd.CredentialError):
        install_cmd._prompt_token()

