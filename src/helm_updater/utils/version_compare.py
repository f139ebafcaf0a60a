"""Semver comparison utilities."""

from __future__ import annotations

import fnmatch
import re

import semver
from packaging.version import InvalidVersion, Version

from helm_updater.errors import UnparsableVersion
from helm_updater.models import BumpKind

# PEP 440 pre-release spellings mapped back to semver labels
_PEP440_LABELS = {"a": "alpha", "b": "beta", "rc": "rc"}

_COMPARATOR_RE = re.compile(r"^(>=|<=|==|!=|>|<|=|\^|~)?\s*(\S+)$")
_HYPHEN_RANGE_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")


def _from_pep440(v: str) -> semver.Version | None:
    """Read a PEP 440 spelling such as "1.0.0rc1" as its semver equivalent."""
    try:
        parsed = Version(v)
    except InvalidVersion:
        return None
    if len(parsed.release) > 3:
        return None
    major, minor, patch = (tuple(parsed.release) + (0, 0, 0))[:3]
    pre: list[str] = []
    if parsed.pre is not None:
        label, number = parsed.pre
        pre += [_PEP440_LABELS.get(label, label), str(number)]
    if parsed.dev is not None:
        pre += ["dev", str(parsed.dev)]
    return semver.Version(major, minor, patch, prerelease=".".join(pre) or None)


def parse_version(v: str) -> semver.Version | None:
    """Parse a version string, returning None on failure.

    A leading "v" and missing minor/patch parts are tolerated. Ordering
    follows semver precedence: pre-release identifiers compare field by
    field and build metadata is ignored.
    """
    if not isinstance(v, str) or not v.strip():
        return None
    raw = v.strip()
    if raw[0] in "vV":
        raw = raw[1:]
    try:
        return semver.Version.parse(raw, optional_minor_and_patch=True)
    except (ValueError, TypeError):
        return _from_pep440(raw)


def release_triple(v: semver.Version) -> tuple[int, int, int]:
    return v.major, v.minor, v.patch


def classify_update(current: str, latest: str) -> BumpKind | None:
    """Classify the bump between two version strings.

    Returns None when either side is unparsable, when latest is not newer,
    or when only pre-release/build metadata differs.
    """
    cur = parse_version(current)
    lat = parse_version(latest)

    if cur is None or lat is None:
        return None
    if lat <= cur:
        return None
    cur_t = release_triple(cur)
    lat_t = release_triple(lat)
    if lat_t[0] != cur_t[0]:
        return BumpKind.MAJOR
    if lat_t[1] != cur_t[1]:
        return BumpKind.MINOR
    if lat_t[2] != cur_t[2]:
        return BumpKind.PATCH
    return None


def matches_glob(name: str, pattern: str) -> bool:
    """Case-sensitive glob match supporting `*` and `?`."""
    return fnmatch.fnmatchcase(name, pattern)


def matches_version_pattern(version: str, pattern: str) -> bool:
    """Check a version against an ignore pattern.

    Patterns may be an exact version ("16.0.0"), a glob ("16.*", "16.x",
    "1.?.0"), or a comparator range (">=16.0.0 <17.0.0", "^1.2.0",
    "~1.2.0", "1.0.0 - 2.0.0", alternatives joined with "||").
    Patterns that cannot be interpreted never match.
    """
    pattern = pattern.strip()
    if not pattern:
        return False
    if "||" in pattern:
        return any(matches_version_pattern(version, alt) for alt in pattern.split("||"))

    if not any(op in pattern for op in ("<", ">", "=", "^", "~", " - ", ",")):
        if any(ch in pattern for ch in "*?xX"):
            glob = ".".join("*" if seg in ("x", "X") else seg for seg in pattern.split("."))
            return fnmatch.fnmatchcase(version.lstrip("vV"), glob.lstrip("vV"))
        cur = parse_version(version)
        exact = parse_version(pattern)
        if cur is None or exact is None:
            return version == pattern
        return cur == exact

    target = parse_version(version)
    if target is None:
        return False
    try:
        return all(_satisfies(target, bound) for bound in _expand_range(pattern))
    except (ValueError, UnparsableVersion):
        return False


def _expand_range(pattern: str) -> list[tuple[str, semver.Version]]:
    hyphen = _HYPHEN_RANGE_RE.match(pattern)
    if hyphen:
        low, high = (_require(hyphen.group(1)), _require(hyphen.group(2)))
        return [(">=", low), ("<=", high)]

    bounds: list[tuple[str, semver.Version]] = []
    # ">= 1.0.0" is tolerated by gluing operators to their operand
    tokens = re.sub(r"(>=|<=|==|!=|>|<|=|\^|~)\s+", r"\1", pattern.replace(",", " ")).split()
    for token in tokens:
        m = _COMPARATOR_RE.match(token)
        if not m:
            raise ValueError(token)
        op, operand = m.group(1) or "=", m.group(2)
        base = _require(operand)
        major, minor, patch = release_triple(base)
        if op == "^":
            if major > 0:
                upper = semver.Version(major + 1)
            elif minor > 0:
                upper = semver.Version(0, minor + 1)
            else:
                upper = semver.Version(0, 0, patch + 1)
            bounds += [(">=", base), ("<", upper)]
        elif op == "~":
            bounds += [(">=", base), ("<", semver.Version(major, minor + 1))]
        else:
            bounds.append((op, base))
    return bounds


def _require(operand: str) -> semver.Version:
    parsed = parse_version(operand)
    if parsed is None:
        raise UnparsableVersion(operand)
    return parsed


def _satisfies(target: semver.Version, bound: tuple[str, semver.Version]) -> bool:
    op, ref = bound
    if op == ">=":
        return target >= ref
    if op == "<=":
        return target <= ref
    if op == ">":
        return target > ref
    if op == "<":
        return target < ref
    if op == "!=":
        return target != ref
    return target == ref
