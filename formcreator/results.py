"""Result dicts and failure categories shared by the form creation services."""

from __future__ import annotations

from typing import Any, Dict, List


Issue = Dict[str, Any]

VALIDATION_FAILURE = "VALIDATION_FAILURE"
TARGET_RESOLUTION_FAILURE = "TARGET_RESOLUTION_FAILURE"
BOOTSTRAP_FAILURE = "BOOTSTRAP_FAILURE"
SCHEMA_DISCOVERY_FAILURE = "SCHEMA_DISCOVERY_FAILURE"
WRITE_FAILURE = "WRITE_FAILURE"
FILESYSTEM_FAILURE = "FILESYSTEM_FAILURE"
MATERIALIZATION_FAILURE = "MATERIALIZATION_FAILURE"
DOCUMENT_PATCH_FAILURE = "DOCUMENT_PATCH_FAILURE"
ARTIFACT_FAILURE = "ARTIFACT_FAILURE"
CACHE_SYNC_FAILURE = "CACHE_SYNC_FAILURE"
PROCESSING_FAILURE = "PROCESSING_FAILURE"
DEGRADED_WRITE = "DEGRADED_WRITE"


def issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


def ok(warnings: List[Issue] | None = None, **payload: Any) -> dict:
    result = {"ok": True, "errors": [], "warnings": list(warnings or [])}
    result.update(payload)
    return result


def fail(
    code: str,
    message: str,
    path: str | None = None,
    detail: dict | None = None,
    warnings: List[Issue] | None = None,
    **payload: Any,
) -> dict:
    result = {"ok": False, "errors": [issue(code, message, path, detail)], "warnings": list(warnings or [])}
    result.update(payload)
    return result


def first_error(result: dict) -> Issue | None:
    errors = result.get("errors") or []
    return errors[0] if errors else None
