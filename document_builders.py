"""Builders for the JSON documents created next to a form definition."""

from __future__ import annotations

import json
import logging
import textwrap
import uuid
from typing import Any, Dict, List

from formkit.json_tree import extract


logger = logging.getLogger("formcreator.documents")

API_ID_PREFIX = "API-"
LIST_ID_PREFIX = "list_"
DEFAULT_USERVIEW_ID = "v"
CATEGORY_ID_PREFIX = "category-"
MAX_LIST_COLUMNS = 6

FORM_FIELD_CLASS_PREFIX = "org.joget.apps.form.lib."
APP_FORM_API_CLASS = "org.joget.api.lib.AppFormAPI"
LIST_BINDER_CLASS = "org.joget.plugin.enterprise.AdvancedFormRowDataListBinder"
USERVIEW_CLASS = "org.joget.apps.userview.model.Userview"
CATEGORY_CLASS = "org.joget.apps.userview.model.UserviewCategory"
CRUD_MENU_CLASS = "org.joget.plugin.enterprise.CrudMenu"
HTML_PAGE_CLASS = "org.joget.apps.userview.lib.HtmlPage"
THEME_CLASS = "org.joget.apps.userview.lib.DefaultTheme"
PERMISSION_CLASS = "org.joget.apps.userview.lib.LoggedInUserPermission"

API_ENABLED_PATHS = (
    "post:/;get:/{recordId};put:/;delete:/{recordId};"
    "post:/saveOrUpdate;post:/updateWithFiles;post:/addWithFiles;get:/list"
)

SYSTEM_COLUMNS = {
    "id",
    "dateCreated",
    "dateModified",
    "createdBy",
    "createdByName",
    "modifiedBy",
    "modifiedByName",
}


def _dumps(doc: dict) -> str:
    return json.dumps(doc, indent=4, ensure_ascii=False) + "\n"


def api_id_for(api_uuid: str) -> str:
    return f"{API_ID_PREFIX}{api_uuid}"


def datalist_id_for(form_id: str) -> str:
    return f"{LIST_ID_PREFIX}{form_id}"


def build_api_definition(form_id: str, api_name: str, api_uuid: str) -> str:
    doc = {
        "elements": [
            {
                "className": APP_FORM_API_CLASS,
                "properties": {
                    "formDefId": form_id,
                    "ignorePermission": "",
                    "id": str(uuid.uuid4()).upper(),
                    "label": "",
                    "ENABLED_PATHS": API_ENABLED_PATHS,
                },
            }
        ],
        "properties": {
            "name": api_name,
            "description": f"Auto-generated API for form: {form_id}",
            "id": api_id_for(api_uuid),
        },
    }
    return _dumps(doc)


def _is_list_field(node: dict) -> bool:
    class_name = node.get("className")
    props = node.get("properties")
    if not isinstance(class_name, str) or not isinstance(props, dict):
        return False
    if FORM_FIELD_CLASS_PREFIX not in class_name:
        return False
    field_id = props.get("id")
    if not isinstance(field_id, str) or not field_id:
        return False
    if field_id.startswith("section") or field_id.startswith("column"):
        return False
    return field_id not in SYSTEM_COLUMNS


def extract_list_columns(form_json: str, max_columns: int = MAX_LIST_COLUMNS) -> List[Dict[str, str]]:
    """Pick up to ``max_columns`` user-defined fields from a form document."""
    try:
        tree = json.loads(form_json)
    except (TypeError, ValueError) as exc:
        logger.warning("list columns skipped; form json unreadable: %s", exc)
        return []
    fields = extract(tree, _is_list_field, limit=max_columns)
    columns = []
    for node in fields:
        props = node["properties"]
        label = props.get("label")
        columns.append(
            {
                "name": props["id"],
                "label": label if isinstance(label, str) and label else props["id"],
            }
        )
    if not columns:
        logger.warning("no user-defined fields found; list falls back to default columns")
    return columns


def build_datalist_definition(form_id: str, datalist_name: str, datalist_id: str, form_json: str) -> str:
    columns = [
        {"name": col["name"], "id": f"column_{idx}", "label": col["label"]}
        for idx, col in enumerate(extract_list_columns(form_json))
    ]
    doc = {
        "useSession": "false",
        "showPageSizeSelector": "true",
        "rowActions": [],
        "columns": columns,
        "pageSize": 0,
        "orderBy": "",
        "filters": [],
        "pageSizeSelectorOptions": "10,20,30,40,50,100",
        "buttonPosition": "bothLeft",
        "checkboxPosition": "left",
        "name": datalist_name,
        "id": datalist_id,
        "binder": {"className": LIST_BINDER_CLASS, "properties": {"formDefId": form_id}},
        "actions": [],
        "order": "",
    }
    return _dumps(doc)


def _crud_menu(form_id: str, datalist_id: str, label: str) -> dict:
    return {
        "className": CRUD_MENU_CLASS,
        "properties": {
            "id": str(uuid.uuid4()),
            "customId": f"{form_id}_crud",
            "label": label,
            "datalistId": datalist_id,
            "addFormId": form_id,
            "editFormId": form_id,
            "list-showDeleteButton": "yes",
            "add-afterSaved": "list",
            "edit-afterSaved": "list",
            "buttonPosition": "bothLeft",
            "checkboxPosition": "left",
            "selectionType": "multiple",
            "rowCount": "true",
            "iconIncluded": False,
            "edit-moreActions": [],
            "list-moreActions": [],
        },
    }


def build_category(form_id: str, datalist_id: str, label: str) -> dict:
    """Category holding a CRUD menu for ``form_id`` backed by ``datalist_id``."""
    return {
        "className": CATEGORY_CLASS,
        "menus": [_crud_menu(form_id, datalist_id, label)],
        "properties": {
            "id": f"{CATEGORY_ID_PREFIX}{uuid.uuid4()}",
            "label": f"<i class='fa fa-tasks'></i> {label}",
        },
    }


def build_home_category(userview_name: str) -> dict:
    return {
        "className": CATEGORY_CLASS,
        "menus": [
            {
                "className": HTML_PAGE_CLASS,
                "properties": {
                    "id": str(uuid.uuid4()),
                    "label": "Welcome",
                    "customId": "welcome",
                    "content": f"<h3>Welcome to {userview_name}</h3>",
                },
            }
        ],
        "properties": {
            "id": f"{CATEGORY_ID_PREFIX}{uuid.uuid4()}",
            "label": "<i class='fa fa-home'></i> Home",
        },
    }


def render_fragment(node: Any, indent: int = 8) -> str:
    """Render ``node`` as JSON text indented to sit inside a parent array."""
    return textwrap.indent(json.dumps(node, indent=4, ensure_ascii=False), " " * indent)


def build_userview_definition(form_id: str, datalist_id: str, userview_name: str, userview_id: str) -> str:
    doc = {
        "className": USERVIEW_CLASS,
        "categories": [
            build_home_category(userview_name),
            build_category(form_id, datalist_id, userview_name),
        ],
        "properties": {
            "id": userview_id,
            "name": userview_name,
            "description": f"Auto-generated userview for {form_id}",
            "welcomeMessage": "#date.EEE, d MMM yyyy#",
            "logoutText": "Logout",
            "footerMessage": "",
        },
        "setting": {
            "properties": {
                "userviewId": userview_id,
                "userviewName": userview_name,
                "theme": {"className": THEME_CLASS, "properties": {}},
                "permission": {"className": PERMISSION_CLASS, "properties": {}},
            }
        },
    }
    return _dumps(doc)
