"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="hupd",
    help="Helm Updater - Keep Helm chart versions in Argo CD manifests current.",
    no_args_is_help=True,
)


def _register_commands() -> None:
    from helm_updater.cli.commands.check_cmd import app as check_app
    from helm_updater.cli.commands.apply_cmd import app as apply_app

    app.add_typer(check_app, name="check", help="Check for chart updates")
    app.add_typer(apply_app, name="apply", help="Apply chart updates to manifests")


_register_commands()


def main() -> None:
    app()
