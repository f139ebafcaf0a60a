"""Apply version updates to manifest files without disturbing their formatting."""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path

import yaml
from deepdiff import DeepDiff

from helm_updater.core.field_locator import locate, resolve_path
from helm_updater.core.line_mutator import replace_value
from helm_updater.errors import HelmUpdaterError, PostMutationValidationFailure, StructuralPathNotFound
from helm_updater.models.diff import FileDiff, ManifestMutationGroup
from helm_updater.models.version import VersionUpdate

logger = logging.getLogger(__name__)

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)

# A version edit may change a scalar's value or its type (1.10 -> "1.11.0")
_ALLOWED_CHANGES = frozenset({"values_changed", "type_changes"})


def group_by_file(updates: list[VersionUpdate]) -> list[ManifestMutationGroup]:
    """Group updates by manifest path, keeping first-seen file order and update order."""
    grouped: dict[str, list[VersionUpdate]] = defaultdict(list)
    for update in updates:
        grouped[update.dependency.manifest_path].append(update)
    return [ManifestMutationGroup(path=path, updates=items) for path, items in grouped.items()]


def apply_updates_to_text(text: str, updates: list[VersionUpdate]) -> tuple[str, list[VersionUpdate]]:
    """Apply updates one after another to progressively mutated text.

    Each locate runs against the latest text. Updates whose path cannot be
    found are logged and dropped; the rest still apply. Returns the new
    text and the updates that actually changed it.
    """
    applied: list[VersionUpdate] = []
    for update in updates:
        dep = update.dependency
        try:
            line_no = locate(text, dep.version_path, dep.document_index)
        except StructuralPathNotFound as exc:
            logger.warning("Skipping %s in %s: %s", dep.chart_name, dep.manifest_path, exc)
            continue

        lines = text.split("\n")
        new_line = replace_value(lines[line_no], update.new_version)
        if new_line == lines[line_no]:
            logger.debug("%s already at %s in %s", dep.chart_name, update.new_version, dep.manifest_path)
            continue
        lines[line_no] = new_line
        text = "\n".join(lines)
        applied.append(update)
    return text, applied


def validate_mutation(original: str, updated: str, applied: list[VersionUpdate]) -> None:
    """Check the updated text still parses, only the targeted fields moved,
    and each of them now holds exactly its new version.
    """
    try:
        after = list(yaml.load_all(updated, Loader=_YamlLoader))
    except yaml.YAMLError as exc:
        raise PostMutationValidationFailure(f"Updated YAML is not valid: {exc}") from exc
    try:
        before = list(yaml.load_all(original, Loader=_YamlLoader))
    except yaml.YAMLError as exc:
        raise PostMutationValidationFailure(f"Original YAML is not valid: {exc}") from exc

    targets = {
        (str(u.dependency.document_index), *u.dependency.version_path) for u in applied
    }
    diff = DeepDiff(before, after, view="tree")
    for report_type, levels in diff.items():
        for level in levels:
            path = tuple(str(p) for p in level.path(output_format="list"))
            if report_type not in _ALLOWED_CHANGES or path not in targets:
                raise PostMutationValidationFailure(
                    f"Unexpected change at {level.path()} ({report_type})"
                )

    for update in applied:
        dep = update.dependency
        try:
            _, node = resolve_path(updated, dep.version_path, dep.document_index)
        except StructuralPathNotFound as exc:
            raise PostMutationValidationFailure(f"Updated field is gone: {exc}") from exc
        if node.value != update.new_version:
            raise PostMutationValidationFailure(
                f"{dep.chart_name} reads {node.value!r} after update, expected {update.new_version!r}"
            )


def _read(path: Path) -> str:
    # newline="" keeps \r\n intact so untouched lines stay byte-identical
    with path.open(encoding="utf-8", newline="") as fh:
        return fh.read()


def _resolve(manifest_path: str, root: Path | None) -> Path:
    path = Path(manifest_path)
    if root is not None and not path.is_absolute():
        return root / path
    return path


def update_manifests(updates: list[VersionUpdate], root: Path | None = None) -> list[FileDiff]:
    """Compute the new content of every manifest touched by `updates`.

    Each file is read once. A file whose edits break parsing, or change
    anything beyond the targeted version fields, is reported unchanged.
    Files that end up identical produce no FileDiff. Nothing is written;
    see write_diffs.
    """
    diffs: list[FileDiff] = []

    for group in group_by_file(updates):
        try:
            original = _read(_resolve(group.path, root))
            updated, applied = apply_updates_to_text(original, group.updates)
            if updated == original:
                logger.debug("No changes for %s", group.path)
                continue
            validate_mutation(original, updated, applied)
        except PostMutationValidationFailure as exc:
            logger.error("Discarding edits to %s: %s", group.path, exc)
            continue
        except (OSError, UnicodeDecodeError, HelmUpdaterError) as exc:
            paths = ", ".join(u.dependency.path_str for u in group.updates)
            logger.error("Failed to update file %s (%s): %s", group.path, paths, exc)
            continue

        diffs.append(FileDiff(path=group.path, original=original, updated=updated, updates=applied))
        logger.info("Prepared %d update(s) for %s", len(applied), group.path)

    return diffs


def write_diffs(diffs: list[FileDiff], root: Path | None = None) -> list[Path]:
    """Write updated content to disk, one write per file."""
    written: list[Path] = []
    for diff in diffs:
        path = _resolve(diff.path, root)
        with path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(diff.updated)
        written.append(path)
    return written
