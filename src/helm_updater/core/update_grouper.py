"""Batch version updates into named groups."""

from __future__ import annotations

from helm_updater.config.settings import GroupRule
from helm_updater.models.version import VersionUpdate
from helm_updater.utils.version_compare import matches_glob

UNGROUPED = "ungrouped"


def matches_group(update: VersionUpdate, group: GroupRule) -> bool:
    if not any(matches_glob(update.chart_name, p) for p in group.patterns):
        return False
    if group.update_types is None:
        return True
    return update.bump_kind in group.update_types


def group_updates(
    updates: list[VersionUpdate], groups: list[GroupRule]
) -> dict[str, list[VersionUpdate]]:
    """Place each update in the first matching group, in definition order.

    Every configured group is present in the result (possibly empty), plus
    an "ungrouped" bucket for updates no group claims.
    """
    result: dict[str, list[VersionUpdate]] = {g.name: [] for g in groups}
    result.setdefault(UNGROUPED, [])

    for update in updates:
        target = next((g.name for g in groups if matches_group(update, g)), UNGROUPED)
        result[target].append(update)

    return result
