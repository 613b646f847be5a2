"""Form definition registration: discovery, raw write, filesystem copy, cache sync."""

from __future__ import annotations

import logging
from typing import Callable

import psycopg2

from formcreator import db
from formcreator.cache_sync import CacheCoordinator
from formcreator.definition_files import DefinitionFiles
from formcreator.definition_writer import FormDefinitionRecord, upsert_definition
from formcreator.host import AppHandle, HostContext
from formcreator.results import FILESYSTEM_FAILURE, SCHEMA_DISCOVERY_FAILURE, fail, ok
from formcreator.schema_discovery import discover_schema
from formcreator.settings import get_form_table_override


logger = logging.getLogger("formcreator.registration")


class FormRegistrationService:
    def __init__(
        self,
        host: HostContext,
        connect: Callable | None = None,
        coordinator: CacheCoordinator | None = None,
        files: DefinitionFiles | None = None,
        form_table: str | None = None,
    ) -> None:
        self._host = host
        self._connect = connect or db.get_conn
        self.coordinator = coordinator or CacheCoordinator(host, connect=self._connect)
        self.files = files or DefinitionFiles()
        self._form_table = form_table

    def _write_row(self, record: FormDefinitionRecord) -> dict:
        override = self._form_table or get_form_table_override()
        with self._connect() as conn:
            try:
                found = discover_schema(conn, override=override)
            except psycopg2.Error as exc:
                conn.rollback()
                logger.error("schema discovery failed: %s", exc)
                return fail(SCHEMA_DISCOVERY_FAILURE, "Catalog probe failed", detail={"error": str(exc).strip()})
            if not found["ok"]:
                conn.rollback()
                return found
            return upsert_definition(conn, found["schema"], record)

    def register(self, app: AppHandle, form_id: str, name: str, table_name: str, form_json: str) -> dict:
        """Make ``form_id`` visible in the definition table, on disk and through host caches.

        Returns ``{"ok", "errors", "warnings", "action", "table"}``. Any error is
        fatal to the caller.
        """
        record = FormDefinitionRecord(
            form_id=form_id,
            app_id=app.app_id,
            app_version=app.version,
            name=name,
            table_name=table_name,
            json=form_json,
        )
        logger.info("registering form %s in %s v%s", form_id, app.app_id, app.version)
        written = self._write_row(record)
        if not written["ok"]:
            return written
        warnings = list(written["warnings"])

        try:
            self.files.write(app, "form", form_id, form_json)
        except (OSError, ValueError) as exc:
            logger.error("form file write failed for %s: %s", form_id, exc)
            # The row is already committed; keep cached reads from hiding it.
            warnings.extend(self.coordinator.invalidate(app))
            return fail(FILESYSTEM_FAILURE, "Form definition file write failed", form_id, {"error": str(exc)}, warnings=warnings)

        synced = self.coordinator.sync(app, form_id, table_name or form_id)
        warnings.extend(synced["warnings"])
        if not synced["ok"]:
            return {**synced, "warnings": warnings, "action": written["action"]}
        return ok(warnings=warnings, action=written["action"], table=synced["table"])
