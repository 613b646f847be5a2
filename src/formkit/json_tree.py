"""String-aware JSON tree helpers: recursive walk/extract and bracket-matched splicing."""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Tuple


class JsonSpliceError(ValueError):
    """Raised when a textual patch cannot locate its target span."""


def walk(node: Any) -> Iterator[dict]:
    """Yield every object in the tree, depth-first, in document order."""
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from walk(item)


def extract(node: Any, predicate: Callable[[dict], bool], limit: int | None = None) -> List[dict]:
    found: List[dict] = []
    if limit is not None and limit <= 0:
        return found
    for obj in walk(node):
        if predicate(obj):
            found.append(obj)
            if limit is not None and len(found) >= limit:
                break
    return found


def find_matching_bracket(text: str, open_pos: int) -> int:
    """Return the index of the ``]`` closing the ``[`` at ``open_pos``, or -1.

    Brackets inside string literals are ignored; backslash escapes inside
    strings are honoured.
    """
    if open_pos < 0 or open_pos >= len(text) or text[open_pos] != "[":
        return -1
    depth = 0
    in_string = False
    escape_next = False
    for idx in range(open_pos, len(text)):
        ch = text[idx]
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return idx
    return -1


def _skip_ws(text: str, idx: int) -> int:
    while idx < len(text) and text[idx] in " \t\r\n":
        idx += 1
    return idx


def find_key(text: str, key: str) -> int:
    """Return the index just past the colon of the root-level ``"key":``, or -1."""
    depth = 0
    in_string = False
    escape_next = False
    string_start = -1
    idx = 0
    while idx < len(text):
        ch = text[idx]
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
                if depth == 1 and text[string_start + 1 : idx] == key:
                    colon = _skip_ws(text, idx + 1)
                    if colon < len(text) and text[colon] == ":":
                        return colon + 1
            idx += 1
            continue
        if ch == '"':
            in_string = True
            string_start = idx
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
        idx += 1
    return -1


def find_array_span(text: str, key: str) -> Tuple[int, int]:
    """Return ``(open, close)`` bracket positions of the root-level array ``key``."""
    after_colon = find_key(text, key)
    if after_colon < 0:
        raise JsonSpliceError(f"key not found: {key}")
    open_pos = _skip_ws(text, after_colon)
    if open_pos >= len(text) or text[open_pos] != "[":
        raise JsonSpliceError(f"opening bracket not found for: {key}")
    close_pos = find_matching_bracket(text, open_pos)
    if close_pos < 0:
        raise JsonSpliceError(f"closing bracket not found for: {key}")
    return open_pos, close_pos


def splice_into_array(text: str, key: str, fragment: str, separator: str = ",") -> str:
    """Append ``fragment`` to the root-level array ``key`` without re-serializing.

    Everything outside the insertion point is returned byte-for-byte. The
    separator is written only when the array already has content.
    """
    open_pos, close_pos = find_array_span(text, key)
    inner = text[open_pos + 1 : close_pos]
    if not inner.strip():
        return text[:close_pos] + fragment + text[close_pos:]
    insert_at = open_pos + 1 + len(inner.rstrip())
    return text[:insert_at] + separator + fragment + text[insert_at:]
