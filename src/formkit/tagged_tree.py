"""Parsing and shape checks for tagged-tree documents (className/properties/elements)."""

from __future__ import annotations

import json
from typing import Any


class TaggedTreeError(ValueError):
    """Raised when a document is not a well-formed tagged tree."""


def _check_node(node: Any, path: str) -> None:
    if not isinstance(node, dict):
        raise TaggedTreeError(f"Expected object at {path}")
    class_name = node.get("className")
    if not isinstance(class_name, str) or not class_name:
        raise TaggedTreeError(f"Missing className at {path}")
    props = node.get("properties", {})
    if not isinstance(props, dict):
        raise TaggedTreeError(f"properties must be an object at {path}")
    elements = node.get("elements")
    if elements is None:
        return
    if not isinstance(elements, list):
        raise TaggedTreeError(f"elements must be an array at {path}")
    for idx, child in enumerate(elements):
        _check_node(child, f"{path}.elements[{idx}]")


def parse_tagged_tree(text: str) -> dict:
    """Parse ``text`` and return the root node.

    The root and every nested element must be an object carrying a string
    ``className``; ``properties`` (when present) must be an object and
    ``elements`` (when present) an array of such nodes.
    """
    if not isinstance(text, str):
        raise TaggedTreeError("Document must be a string")
    text = text.lstrip("\ufeff").strip()
    try:
        root = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TaggedTreeError(f"Invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(root, dict):
        raise TaggedTreeError("Document root must be an object")
    if not isinstance(root.get("properties"), dict):
        raise TaggedTreeError("Missing properties at $")
    _check_node(root, "$")
    return root


class TaggedTreeParser:
    """Default document parser used when the host does not supply one."""

    def parse(self, text: str) -> dict:
        return parse_tagged_tree(text)
