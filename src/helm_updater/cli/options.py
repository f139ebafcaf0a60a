"""Shared CLI options."""

from __future__ import annotations

from pathlib import Path

import typer

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
ConfigOption = typer.Option(
    None, "--config", "-c", help="Config file (default: .helm-updater.yml under --root)", dir_okay=False
)
RootOption = typer.Option(
    Path("."), "--root", "-r", help="Repository root to scan", exists=True, file_okay=False
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
