"""Dependent artifacts created next to a form: API endpoint, datalist, userview."""

from __future__ import annotations

import logging
import uuid
from typing import List

from document_builders import (
    DEFAULT_USERVIEW_ID,
    api_id_for,
    build_api_definition,
    build_category,
    build_datalist_definition,
    build_userview_definition,
    datalist_id_for,
)
from formcreator.cache_sync import CacheCoordinator
from formcreator.definition_files import DefinitionFiles
from formcreator.host import AppHandle, DefinitionDao, HostContext
from formcreator.results import (
    ARTIFACT_FAILURE,
    DOCUMENT_PATCH_FAILURE,
    FILESYSTEM_FAILURE,
    Issue,
    fail,
    first_error,
    ok,
)
from userview_patch import append_category


logger = logging.getLogger("formcreator.artifacts")

LIST_NAME_PREFIX = "List - "
API_NAME_SUFFIX = " API"


def _record(app: AppHandle, definition_id: str, name: str, content: str, description: str | None = None) -> dict:
    return {
        "id": definition_id,
        "app_id": app.app_id,
        "app_version": app.version,
        "name": name,
        "description": description or "",
        "json": content,
    }


class _ArtifactStore:
    """Writes one definition document to disk and through its host DAO."""

    kind = ""

    def __init__(self, host: HostContext, coordinator: CacheCoordinator, files: DefinitionFiles) -> None:
        self._host = host
        self._coordinator = coordinator
        self._files = files

    def _dao(self) -> DefinitionDao:
        raise NotImplementedError

    def _persist(self, app: AppHandle, record: dict) -> dict:
        definition_id = record["id"]
        try:
            self._files.write(app, self.kind, definition_id, record["json"])
        except (OSError, ValueError) as exc:
            logger.error("%s file write failed for %s: %s", self.kind, definition_id, exc)
            return fail(FILESYSTEM_FAILURE, f"{self.kind} file write failed", definition_id, {"error": str(exc)})

        dao = self._dao()
        try:
            if dao.load_by_id(definition_id, app) is None:
                dao.add(record)
                action = "add"
            else:
                dao.update(record)
                action = "update"
        except Exception:
            logger.exception("%s dao write failed for %s", self.kind, definition_id)
            return fail(ARTIFACT_FAILURE, f"{self.kind} definition could not be stored", definition_id)
        logger.info("%s %s stored (%s) in %s v%s", self.kind, definition_id, action, app.app_id, app.version)
        warnings = self._coordinator.invalidate(app, dao)
        return ok(warnings=warnings, action=action)


class ApiEndpointService(_ArtifactStore):
    kind = "api"

    def _dao(self) -> DefinitionDao:
        return self._host.builder_dao

    def create(self, app: AppHandle, form_id: str, form_name: str, api_name: str | None = None) -> dict:
        api_uuid = str(uuid.uuid4())
        api_id = api_id_for(api_uuid)
        name = api_name or f"{form_name}{API_NAME_SUFFIX}"
        content = build_api_definition(form_id, name, api_uuid)
        record = _record(app, api_id, name, content, f"Auto-generated API for form: {form_id}")
        record["type"] = "api"
        result = self._persist(app, record)
        result["api_id"] = api_id if result["ok"] else None
        return result


class DatalistService(_ArtifactStore):
    kind = "datalist"

    def _dao(self) -> DefinitionDao:
        return self._host.datalist_dao

    def create(self, app: AppHandle, form_id: str, form_name: str, form_json: str, datalist_name: str | None = None) -> dict:
        datalist_id = datalist_id_for(form_id)
        name = datalist_name or f"{LIST_NAME_PREFIX}{form_name}"
        content = build_datalist_definition(form_id, name, datalist_id, form_json)
        result = self._persist(app, _record(app, datalist_id, name, content))
        result["datalist_id"] = datalist_id if result["ok"] else None
        return result


class UserviewService(_ArtifactStore):
    kind = "userview"

    def _dao(self) -> DefinitionDao:
        return self._host.userview_dao

    def find_existing(self, app: AppHandle) -> dict | None:
        """The default userview of ``app``, else the first one it has."""
        dao = self._dao()
        existing = dao.load_by_id(DEFAULT_USERVIEW_ID, app)
        if existing is not None:
            return existing
        records = dao.list(app) or []
        return records[0] if records else None

    def attach(self, app: AppHandle, form_id: str, datalist_id: str, userview_name: str) -> dict:
        """Create the default userview or append a CRUD category to the existing one."""
        try:
            existing = self.find_existing(app)
        except Exception:
            logger.exception("userview lookup failed in %s", app.app_id)
            return fail(ARTIFACT_FAILURE, "userview lookup failed", userview_id=None)

        if existing is None:
            content = build_userview_definition(form_id, datalist_id, userview_name, DEFAULT_USERVIEW_ID)
            record = _record(app, DEFAULT_USERVIEW_ID, userview_name, content)
            mode = "create"
        else:
            userview_id = existing.get("id") or DEFAULT_USERVIEW_ID
            patched = append_category(existing.get("json") or "", build_category(form_id, datalist_id, userview_name))
            if not patched["ok"]:
                err = first_error(patched) or {}
                logger.warning("userview %s not patched: %s", userview_id, err.get("message"))
                return fail(
                    DOCUMENT_PATCH_FAILURE,
                    err.get("message") or "userview document could not be patched",
                    userview_id,
                    userview_id=None,
                )
            record = {**existing, "json": patched["json"]}
            mode = "patch"

        result = self._persist(app, record)
        result["mode"] = mode
        result["userview_id"] = record["id"] if result["ok"] else None
        return result


class CrudService:
    """Datalist plus a userview CRUD menu for one form."""

    def __init__(self, datalists: DatalistService, userviews: UserviewService) -> None:
        self._datalists = datalists
        self._userviews = userviews

    def create(
        self,
        app: AppHandle,
        form_id: str,
        form_name: str,
        form_json: str,
        datalist_name: str | None = None,
        userview_name: str | None = None,
    ) -> dict:
        listed = self._datalists.create(app, form_id, form_name, form_json, datalist_name)
        if not listed["ok"]:
            return {**listed, "userview_id": None}
        warnings: List[Issue] = list(listed["warnings"])
        viewed = self._userviews.attach(app, form_id, listed["datalist_id"], userview_name or form_name)
        warnings.extend(viewed["warnings"])
        return {**viewed, "warnings": warnings, "datalist_id": listed["datalist_id"]}
