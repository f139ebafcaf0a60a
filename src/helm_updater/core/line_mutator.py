"""Rewrite the value on a single `key: value` line, and nothing else."""

from __future__ import annotations

import re

# (indent)(key)(:)(spacing)(tag or anchor properties)(value)(rest: trailing spaces, comment, \r)
_LINE_RE = re.compile(
    r"""^(\s*)([^:#]+?)(:)([ \t]+)((?:[!&]\S*[ \t]+)*)("[^"]*"|'[^']*'|[^\s#]+)(.*)$""",
    re.DOTALL,
)
_COMMENT_RE = re.compile(r"(?:^|\s)#")
_LAST_TOKEN_RE = re.compile(r"""("[^"]*"|'[^']*'|[^\s"']+)(\s*)$""")


def _requote(old_value: str, new_value: str) -> str:
    if len(old_value) >= 2 and old_value[0] == old_value[-1] and old_value[0] in "\"'":
        return f"{old_value[0]}{new_value}{old_value[0]}"
    return new_value


def replace_value(line: str, new_value: str) -> str:
    """Return `line` with its value replaced by `new_value`.

    Indent, key, colon spacing and anything after the value (comment,
    trailing whitespace) are kept byte for byte; a quoted value stays
    quoted with the same quote character. Lines that are not `key: value`
    shaped get their last token before any comment replaced instead.
    """
    m = _LINE_RE.match(line)
    if m:
        indent, key, colon, spacing, props, old_value, rest = m.groups()
        return f"{indent}{key}{colon}{spacing}{props}{_requote(old_value, new_value)}{rest}"

    comment = _COMMENT_RE.search(line)
    code_end = comment.start() if comment else len(line)
    code, tail = line[:code_end], line[code_end:]
    fallback = _LAST_TOKEN_RE.search(code)
    if fallback is None:
        return line
    old_value, spacing = fallback.groups()
    return f"{code[: fallback.start()]}{_requote(old_value, new_value)}{spacing}{tail}"
