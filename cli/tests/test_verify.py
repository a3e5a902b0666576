import subprocess

from sfp_prereqs.runner import CommandRunner
from sfp_prereqs.verify import VerificationResult, print_verification, verify_installations


class _ProbeRunner(CommandRunner):
    def __init__(self, outputs: dict[str, str]) -> None:
        self.outputs = outputs

    def run(self, cmd, *, input=None, env=None, capture=False, check=True):
        joined = " ".join(cmd)
        if joined in self.outputs:
            return subprocess.CompletedProcess(list(cmd), 0, self.outputs[joined], "")
        return subprocess.CompletedProcess(list(cmd), 127, "", "not found")


def test_verify_installations_reports_each_tool() -> None:
    runner = _ProbeRunner(
        {
            "node --version": "v20.11.0\n",
            "docker --version": "Docker version 24.0.7, build afdd53b",
            "docker compose version": "Docker Compose version v2.24.5",
            "infisical --version": "infisical version 0.22.0",
            "supabase --version": "2.0.0",
            "/home/op/.npm-global/bin/sfp --version": "@flxbl-io/sfp/49.2.0 linux-x64",
        }
    )

    results = verify_installations(runner, sfp_path="/home/op/.npm-global/bin/sfp")

    assert [r.name for r in results] == [
        "Node.js",
        "Docker",
        "Docker Compose",
        "Infisical CLI",
        "Supabase CLI",
        "SFP CLI",
    ]
    assert all(r.ok for r in results)
    assert results[0].output == "v20.11.0"


def test_missing_tool_fails_summary(capsys) -> None:
    results = [
        VerificationResult(name="Node.js", ok=True, output="v20.11.0"),
        VerificationResult(name="SFP CLI", ok=False),
    ]
    assert print_verification(results) is False
    assert "SFP CLI did not respond" in capsys.readouterr().err


def test_all_present_summary(capsys) -> None:
    assert print_verification([VerificationResult(name="Docker", ok=True, output="24.0.7")]) is True
    assert "Docker" in capsys.readouterr().out
