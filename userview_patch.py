"""Append categories to an existing userview document by textual splice."""

from __future__ import annotations

from typing import Any, Dict

from document_builders import render_fragment
from formkit.json_tree import JsonSpliceError, splice_into_array


Issue = Dict[str, Any]

CATEGORIES_KEY = "categories"


def _issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


def append_category(userview_json: str, category: dict) -> dict:
    """Return ``{"ok", "json", "errors"}`` with ``category`` appended to ``categories``.

    The parent text is never re-serialized; on failure ``json`` is None and the
    caller keeps the original document.
    """
    if not isinstance(userview_json, str) or not userview_json.strip():
        return {
            "ok": False,
            "json": None,
            "errors": [_issue("DOCUMENT_PATCH_FAILURE", "userview document is empty", CATEGORIES_KEY)],
        }
    fragment = render_fragment(category)
    try:
        patched = splice_into_array(userview_json, CATEGORIES_KEY, fragment, separator=",\n")
    except JsonSpliceError as exc:
        return {
            "ok": False,
            "json": None,
            "errors": [_issue("DOCUMENT_PATCH_FAILURE", str(exc), CATEGORIES_KEY)],
        }
    return {"ok": True, "json": patched, "errors": []}
