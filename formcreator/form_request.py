"""Inbound form creation request and its validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

from formcreator.definition_files import is_safe_definition_id
from formcreator.results import VALIDATION_FAILURE, Issue, issue
from formkit.tagged_tree import TaggedTreeParser


TRUTHY_FLAGS = {"true", "1", "yes", "on", "checked"}

REQUIRED_FIELDS = (
    ("form_id", "formId"),
    ("form_name", "formName"),
    ("table_name", "tableName"),
    ("form_definition", "formDefinition"),
)


def parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        # Multi-value checkbox posts arrive as lists.
        return any(parse_flag(v) for v in value)
    return str(value).strip().lower() in TRUTHY_FLAGS


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class FormCreationRequest:
    form_id: str | None
    form_name: str | None
    table_name: str | None
    form_definition: str | None
    target_app_id: str | None = None
    target_app_version: str | None = None
    create_api_endpoint: bool = False
    api_name: str | None = None
    create_crud: bool = False
    datalist_name: str | None = None
    userview_name: str | None = None
    definition_error: str | None = field(default=None, repr=False)

    @classmethod
    def from_payload(cls, payload: dict) -> "FormCreationRequest":
        definition = payload.get("formDefinition")
        definition_error = None
        if isinstance(definition, (bytes, bytearray)):
            try:
                definition = definition.decode("utf-8")
            except UnicodeDecodeError as exc:
                definition, definition_error = None, f"not valid UTF-8: {exc.reason} at byte {exc.start}"
        return cls(
            form_id=_text(payload.get("formId")),
            form_name=_text(payload.get("formName")),
            table_name=_text(payload.get("tableName")),
            form_definition=definition if isinstance(definition, str) and definition.strip() else None,
            target_app_id=_text(payload.get("targetAppId")),
            target_app_version=_text(payload.get("targetAppVersion")),
            create_api_endpoint=parse_flag(payload.get("createApiEndpoint")),
            api_name=_text(payload.get("apiName")),
            create_crud=parse_flag(payload.get("createCrud")),
            datalist_name=_text(payload.get("datalistName")),
            userview_name=_text(payload.get("userviewName")),
            definition_error=definition_error,
        )


def validate_request(request: FormCreationRequest, parser=None) -> List[Issue]:
    """Return validation issues; an empty list means the request is usable."""
    errors: List[Issue] = []
    for attr, field_name in REQUIRED_FIELDS:
        if attr == "form_definition" and request.definition_error:
            errors.append(issue(VALIDATION_FAILURE, "formDefinition could not be decoded", field_name, {"error": request.definition_error}))
        elif not getattr(request, attr):
            errors.append(issue(VALIDATION_FAILURE, f"{field_name} is required", field_name))
    if request.form_id and not is_safe_definition_id(request.form_id):
        # The id doubles as a file name under app_src.
        errors.append(issue(VALIDATION_FAILURE, "formId must not contain path separators", "formId", {"form_id": request.form_id}))
    if request.form_definition:
        parser = parser or TaggedTreeParser()
        try:
            document = parser.parse(request.form_definition)
        except ValueError as exc:
            errors.append(issue(VALIDATION_FAILURE, "formDefinition is not a valid form document", "formDefinition", {"error": str(exc)}))
        else:
            if document is None:
                errors.append(issue(VALIDATION_FAILURE, "formDefinition is not a valid form document", "formDefinition"))
    return errors
