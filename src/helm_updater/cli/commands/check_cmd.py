"""hupd check - Report available chart updates."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_updater.cli.options import ConfigOption, OutputOption, RootOption, VerboseOption
from helm_updater.cli.runtime import load_or_exit
from helm_updater.core.update_checker import UpdateChecker
from helm_updater.output.formatters import output_updates

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def check(
    output: str = OutputOption,
    config: Optional[Path] = ConfigOption,
    root: Path = RootOption,
    verbose: bool = VerboseOption,
) -> None:
    """List chart updates available for Argo CD manifests under --root."""
    settings = load_or_exit(config, root, verbose)
    checker = UpdateChecker(settings, root=root)

    with console.status("[bold cyan]Scanning manifests…") as status:
        deps = checker.find_dependencies()

        def on_progress(i: int, total: int, chart: str) -> None:
            status.update(f"[bold cyan]Checking versions… [dim]({i}/{total})[/dim] {chart}")

        updates = checker.check_for_updates(deps, on_progress=on_progress) if deps else []

    output_updates(checker.group_updates(updates), output)
