from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from rich.table import Table

from . import console
from .runner import CommandRunner


@dataclass(frozen=True)
class VerificationResult:
    name: str
    ok: bool
    output: str = ""


def verification_commands(sfp_path: str | None) -> list[tuple[str, list[str]]]:
    return [
        ("Node.js", ["node", "--version"]),
        ("Docker", ["docker", "--version"]),
        ("Docker Compose", ["docker", "compose", "version"]),
        ("Infisical CLI", ["infisical", "--version"]),
        ("Supabase CLI", ["supabase", "--version"]),
        ("SFP CLI", [sfp_path or "sfp", "--version"]),
    ]


def verify_installations(runner: CommandRunner, *, sfp_path: str | None) -> list[VerificationResult]:
    results = []
    for name, cmd in verification_commands(sfp_path):
        output = runner.capture(cmd)
        first_line = (output or "").splitlines()[0] if output else ""
        results.append(VerificationResult(name=name, ok=output is not None, output=first_line))
    return results


def print_verification(results: Sequence[VerificationResult]) -> bool:
    table = Table(title="Verifying installations", show_header=True, header_style="bold")
    table.add_column("Tool")
    table.add_column("Status")
    table.add_column("Version")
    for result in results:
        status = "[green]OK[/]" if result.ok else "[red]MISSING[/]"
        table.add_row(result.name, status, result.output or "-")
    console.print(table)
    failed = [r.name for r in results if not r.ok]
    for name in failed:
        console.err(f"{name} did not respond to its version command")
    return not failed
