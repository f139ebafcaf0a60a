"""Bump kind color map."""

from __future__ import annotations

from helm_updater.models import BumpKind

BUMP_COLORS: dict[BumpKind, str] = {
    BumpKind.MAJOR: "red bold",
    BumpKind.MINOR: "yellow",
    BumpKind.PATCH: "green",
}


def styled_bump(kind: BumpKind | None) -> str:
    if kind is None:
        return "[dim]unknown[/dim]"
    color = BUMP_COLORS.get(kind, "white")
    return f"[{color}]{kind.value}[/{color}]"
