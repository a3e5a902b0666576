from __future__ import annotations

import typer

from .commands import install_cmd


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="sfp-prereqs",
        help="Install SFP prerequisites and the SFP CLI",
        add_completion=False,
        context_settings={"help_option_names": ["-h", "--help"]},
    )
    app.command()(install_cmd.install)
    return app


app = _build_app()
