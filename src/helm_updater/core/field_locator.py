"""Find the source line holding a field, given its structural path.

Two phases: the path is first resolved against the composed YAML node tree
(ScalarNode | SequenceNode | MappingNode), then walked line by line through
the raw text. The node tree tells us the path is real; the line walk tells
us where it is without re-serializing anything.
"""

from __future__ import annotations

import enum
import logging
import re
from collections import Counter
from typing import NamedTuple, Optional

import yaml

from helm_updater.errors import StructuralPathNotFound
from helm_updater.models.dependency import StructuralPath

logger = logging.getLogger(__name__)

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)

DEFAULT_INDENT = 2

_SEPARATOR_RE = re.compile(r"^---(?:\s|$)")
_DASH_RE = re.compile(r"^-(\s+|$)(.*)$")


class SegmentKind(enum.Enum):
    KEY = "key"
    INDEX = "index"


class _Inline(NamedTuple):
    """Content written on the same line as a sequence dash."""

    line: int
    col: int
    text: str


def indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def is_content(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


# ---------------------------------------------------------------------------
# Structural pre-check
# ---------------------------------------------------------------------------

def resolve_path(
    text: str, path: StructuralPath, document_index: int
) -> tuple[list[SegmentKind], yaml.ScalarNode]:
    """Resolve a path in the parsed document.

    Returns the kind of each segment and the scalar node it lands on.
    Numeric segments are array indices only where the node is a sequence.
    """
    try:
        documents = list(yaml.compose_all(text, Loader=_YamlLoader))
    except yaml.YAMLError as exc:
        raise StructuralPathNotFound(path, document_index, f"document does not parse ({exc})") from exc

    if document_index < 0 or document_index >= len(documents):
        raise StructuralPathNotFound(
            path, document_index, f"only {len(documents)} document(s) in file"
        )

    return resolve_node(documents[document_index], path, document_index)


def resolve_node(
    node: yaml.Node, path: StructuralPath, document_index: int
) -> tuple[list[SegmentKind], yaml.ScalarNode]:
    """Walk `path` down from an already composed document node."""
    kinds: list[SegmentKind] = []
    for segment in path:
        if isinstance(node, yaml.MappingNode):
            child = next(
                (v for k, v in node.value if isinstance(k, yaml.ScalarNode) and k.value == segment),
                None,
            )
            if child is None:
                raise StructuralPathNotFound(path, document_index, f"no key {segment!r}")
            kinds.append(SegmentKind.KEY)
            node = child
        elif isinstance(node, yaml.SequenceNode):
            if not segment.isdigit() or int(segment) >= len(node.value):
                raise StructuralPathNotFound(path, document_index, f"no item {segment!r}")
            kinds.append(SegmentKind.INDEX)
            node = node.value[int(segment)]
        else:
            raise StructuralPathNotFound(path, document_index, f"cannot descend into scalar at {segment!r}")

    if not isinstance(node, yaml.ScalarNode):
        raise StructuralPathNotFound(path, document_index, "path does not end on a scalar")
    return kinds, node


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def document_line_ranges(lines: list[str]) -> list[tuple[int, int]]:
    """Half-open line ranges of every document in a multi-document file.

    A leading segment before the first `---` only counts when it holds
    content; every segment after a separator counts, even when empty.
    """
    separators = [i for i, line in enumerate(lines) if _SEPARATOR_RE.match(line)]
    starts = [0] + [s + 1 for s in separators]
    ends = separators + [len(lines)]
    ranges = list(zip(starts, ends))
    if separators and not any(
        is_content(line) and not line.startswith("%") for line in lines[: separators[0]]
    ):
        ranges = ranges[1:]
    return ranges


def document_line_range(lines: list[str], document_index: int) -> tuple[int, int]:
    ranges = document_line_ranges(lines)
    if document_index < 0 or document_index >= len(ranges):
        raise IndexError(document_index)
    return ranges[document_index]


def detect_indent_increment(lines: list[str]) -> int:
    """Guess the file's indentation step from deltas between content lines.

    The most frequent positive delta wins (smaller on ties), defaulting to 2.
    A winner that is a multiple of a smaller observed step (>= 2) is
    collapsed to that step, so a run of 4s in a 2-space file reads as two
    levels. This is a heuristic and can misjudge unusual files.
    """
    deltas: Counter[int] = Counter()
    prev: Optional[int] = None
    for line in lines:
        if not is_content(line):
            continue
        ind = indent_of(line)
        if prev is not None and ind > prev:
            deltas[ind - prev] += 1
        prev = ind

    if not deltas:
        return DEFAULT_INDENT
    increment = max(deltas, key=lambda d: (deltas[d], -d))
    divisors = [d for d in deltas if 2 <= d < increment and increment % d == 0]
    if divisors:
        increment = min(divisors)
    return increment


def _first_content_indent(lines: list[str], start: int, end: int) -> Optional[int]:
    for n in range(start, end):
        if is_content(lines[n]):
            return indent_of(lines[n])
    return None


def _key_block_end(lines: list[str], start: int, end: int, key_indent: int) -> int:
    """End of the block owned by a key line (exclusive).

    An indentless sequence (dashes at the key's own indent) belongs to the
    key, so those dash lines do not close the block.
    """
    first = next((n for n in range(start, end) if is_content(lines[n])), None)
    indentless = (
        first is not None
        and indent_of(lines[first]) == key_indent
        and _DASH_RE.match(lines[first].lstrip(" ")) is not None
    )
    for n in range(start, end):
        line = lines[n]
        if not is_content(line):
            continue
        ind = indent_of(line)
        if ind < key_indent:
            return n
        if ind == key_indent and not (indentless and _DASH_RE.match(line[ind:])):
            return n
    return end


def _item_block_end(lines: list[str], start: int, end: int, dash_indent: int) -> int:
    for n in range(start, end):
        if is_content(lines[n]) and indent_of(lines[n]) <= dash_indent:
            return n
    return end


def _find_key(
    lines: list[str],
    key: str,
    start: int,
    end: int,
    indent: int,
    inline: Optional[_Inline],
) -> Optional[tuple[int, int]]:
    pattern = re.compile(r"^(['\"]?)" + re.escape(key) + r"\1\s*:(?:\s|$)")
    if inline is not None and inline.col == indent and pattern.match(inline.text):
        return inline.line, inline.col
    for n in range(start, end):
        line = lines[n]
        if is_content(line) and indent_of(line) == indent and pattern.match(line[indent:]):
            return n, indent
    return None


def _find_item(
    lines: list[str], index: int, start: int, end: int, min_indent: int
) -> Optional[tuple[int, int]]:
    count = 0
    dash_indent: Optional[int] = None
    for n in range(start, end):
        line = lines[n]
        if not is_content(line):
            continue
        ind = indent_of(line)
        if ind < min_indent or not _DASH_RE.match(line[ind:]):
            continue
        if dash_indent is None:
            dash_indent = ind
        elif ind != dash_indent:
            # dash of a nested sequence
            continue
        if count == index:
            return n, ind
        count += 1
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def locate(text: str, path: StructuralPath, document_index: int) -> int:
    """Return the zero-based line number holding the field at `path`.

    Raises StructuralPathNotFound when the path does not resolve in the
    parsed document or cannot be pinned to a single line of text.
    """
    path = tuple(str(p) for p in path)
    if not path:
        raise StructuralPathNotFound(path, document_index, "empty path")
    kinds, scalar = resolve_path(text, path, document_index)

    lines = text.split("\n")
    try:
        doc_start, doc_end = document_line_range(lines, document_index)
    except IndexError:
        raise StructuralPathNotFound(path, document_index, "document separators do not match parsed documents")

    increment = detect_indent_increment(lines[doc_start:doc_end])
    base = _first_content_indent(lines, doc_start, doc_end) or 0

    search_start, search_end = doc_start, doc_end
    expected = base
    parent_indent = base
    inline: Optional[_Inline] = None
    found: Optional[int] = None

    for pos, (segment, kind) in enumerate(zip(path, kinds)):
        last = pos == len(path) - 1

        if kind is SegmentKind.KEY:
            hit = _find_key(lines, segment, search_start, search_end, expected, inline)
            if hit is None:
                # mixed indentation: fall back to the block's real child indent
                actual = inline.col if inline is not None else _first_content_indent(lines, search_start, search_end)
                if actual is not None and actual != expected:
                    logger.debug("Indent %d did not match at %r, retrying with %d", expected, segment, actual)
                    hit = _find_key(lines, segment, search_start, search_end, actual, inline)
            if hit is None:
                raise StructuralPathNotFound(path, document_index, f"key {segment!r} not found in text")
            line_no, col = hit
            if last:
                found = line_no
                break
            search_start = line_no + 1
            search_end = _key_block_end(lines, search_start, search_end, col)
            parent_indent = col
            expected = col + increment
            inline = None
        else:
            hit = _find_item(lines, int(segment), search_start, search_end, parent_indent)
            if hit is None:
                raise StructuralPathNotFound(path, document_index, f"item {segment} not found in text")
            line_no, dash_indent = hit
            if last:
                found = line_no
                break
            m = _DASH_RE.match(lines[line_no][dash_indent:])
            rest = m.group(2) if m else ""
            inline = None
            if rest and not rest.lstrip().startswith("#"):
                inline = _Inline(line_no, dash_indent + 1 + len(m.group(1)), rest)
            search_start = line_no + 1
            search_end = _item_block_end(lines, search_start, search_end, dash_indent)
            parent_indent = inline.col if inline is not None else dash_indent + increment
            expected = parent_indent

    if found is None:
        raise StructuralPathNotFound(path, document_index, "path walk ended early")
    if scalar.start_mark.line != found:
        raise StructuralPathNotFound(
            path,
            document_index,
            f"text match on line {found + 1} disagrees with parsed value on line {scalar.start_mark.line + 1}",
        )
    return found
