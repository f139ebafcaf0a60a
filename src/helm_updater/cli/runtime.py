"""Settings and logging setup shared by commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from helm_updater.config.settings import Settings, load_settings
from helm_updater.errors import ConfigError


def configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_or_exit(config: Optional[Path], root: Path, verbose: bool) -> Settings:
    try:
        settings = load_settings(config_file=config, root=root)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    configure_logging(logging.DEBUG if verbose else settings.logging_level)
    return settings
