"""Java properties sources.

Implements the ``java.util.Properties`` text format: ``#`` and ``!``
comments, ``=``, ``:`` or whitespace separators, backslash line
continuations and escapes (including ``\\uXXXX``). Dotted keys become
paths; values are text that coerces on demand.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from ..core.filters import flatten_to_text
from ..core.provider import Provider
from ..core.source import tree_from_flat

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_WHITESPACE = " \t\f"
_SEPARATORS = "=:"


def _logical_lines(text: str) -> Iterator[str]:
    """Join continued lines and drop blank and comment lines."""
    pending: List[str] = []
    for raw in text.splitlines():
        line = raw.lstrip(_WHITESPACE)
        if not pending and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending.append(line[:-1])
            continue
        pending.append(line)
        yield "".join(pending)
        pending = []
    if pending:
        yield "".join(pending)


def _unescape(text: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != "\\" or i + 1 == len(text):
            out.append(char)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == "u":
            digits = text[i + 2 : i + 6]
            if len(digits) != 4 or not re.fullmatch(r"[0-9a-fA-F]{4}", digits):
                raise ValueError(f"malformed \\uxxxx escape: '\\u{digits}'")
            out.append(chr(int(digits, 16)))
            i += 6
        else:
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
    return "".join(out)


def _split(line: str) -> Tuple[str, str]:
    """Split a logical line into its raw key and raw value."""
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            i += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def parse_properties(text: str) -> Dict[str, str]:
    """Parse properties text into a flat mapping; later keys win."""
    result: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split(line)
        result[_unescape(key)] = _unescape(value)
    return result


def _escape(text: str, is_key: bool) -> str:
    out: List[str] = []
    for index, char in enumerate(text):
        if char == "\\":
            out.append("\\\\")
        elif char == "\t":
            out.append("\\t")
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\f":
            out.append("\\f")
        elif char in "=:#!":
            out.append("\\" + char)
        elif char == " " and (is_key or index == 0):
            out.append("\\ ")
        else:
            out.append(char)
    return "".join(out)


def dump_properties(flat: Mapping[str, str]) -> str:
    return "".join(
        f"{_escape(key, True)} = {_escape(value, False)}\n" for key, value in flat.items()
    )


class PropertiesProvider(Provider):
    type = "properties"
    encoding = "utf-8"
    flat = True

    def parse(self, text: str) -> Dict[str, Any]:
        return tree_from_flat(parse_properties(text))

    def dump(self, data: Mapping[str, Any]) -> str:
        return dump_properties(flatten_to_text(dict(data)))
