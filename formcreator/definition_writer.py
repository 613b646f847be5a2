"""Upsert of form definition rows through a discovered schema."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Tuple

import psycopg2

from formcreator import db
from formcreator.db import quote_ident
from formcreator.results import DEGRADED_WRITE, WRITE_FAILURE, fail, issue, ok
from formcreator.schema_discovery import DiscoveredSchema


logger = logging.getLogger("formcreator.writer")

UPDATE_ROLES = ("name", "table_name", "json", "date_modified")
OPTIONAL_ROLES = ("name", "table_name", "json", "date_created", "date_modified")


@dataclass(frozen=True)
class FormDefinitionRecord:
    form_id: str
    app_id: str
    app_version: str
    name: str | None
    table_name: str | None
    json: str

    def value_for(self, role: str, now: datetime) -> Any:
        if role == "id":
            return self.form_id
        if role == "app_id":
            return self.app_id
        if role == "app_version":
            return str(self.app_version)
        if role == "name":
            return self.name or self.form_id
        if role == "table_name":
            return self.table_name or self.form_id
        if role == "json":
            return self.json
        if role in ("date_created", "date_modified"):
            return now
        raise KeyError(role)


def _key_clause(schema: DiscoveredSchema) -> str:
    return " and ".join(f"{quote_ident(schema.column(role))} = %s" for role in ("id", "app_id", "app_version"))


def _key_params(record: FormDefinitionRecord) -> List[Any]:
    return [record.form_id, record.app_id, str(record.app_version)]


def definition_exists(conn, schema: DiscoveredSchema, record: FormDefinitionRecord) -> bool:
    if not schema.has_key:
        logger.info("key columns unresolved on %s; skipping existence check", schema.table)
        return False
    row = db.fetch_one(
        conn,
        f"select count(*) as total from {quote_ident(schema.table)} where {_key_clause(schema)}",
        _key_params(record),
        query_name="form_definition.exists",
    )
    return bool(row and int(row.get("total") or 0) > 0)


def build_update(schema: DiscoveredSchema, record: FormDefinitionRecord, now: datetime) -> Tuple[str, List[Any]] | None:
    assignments = []
    params: List[Any] = []
    for role in UPDATE_ROLES:
        col = schema.column(role)
        if col is None:
            continue
        assignments.append(f"{quote_ident(col)} = %s")
        params.append(record.value_for(role, now))
    if not assignments:
        return None
    sql = f"update {quote_ident(schema.table)} set {', '.join(assignments)} where {_key_clause(schema)}"
    return sql, params + _key_params(record)


def build_insert(schema: DiscoveredSchema, record: FormDefinitionRecord, now: datetime) -> Tuple[str, List[Any]]:
    pairs = schema.role_columns()
    cols = ", ".join(quote_ident(col) for _, col in pairs)
    placeholders = ", ".join("%s" for _ in pairs)
    sql = f"insert into {quote_ident(schema.table)} ({cols}) values ({placeholders})"
    return sql, [record.value_for(role, now) for role, _ in pairs]


def upsert_definition(conn, schema: DiscoveredSchema, record: FormDefinitionRecord, now: datetime | None = None) -> dict:
    """Insert or update ``record`` and commit. Returns ``{"ok", "action", "rowcount", ...}``."""
    now = now or datetime.now(timezone.utc)
    warnings = []
    missing = [role for role in OPTIONAL_ROLES if schema.column(role) is None]
    if missing:
        logger.warning("form table %s lacks columns for %s; writing a partial row", schema.table, missing)
        warnings.append(
            issue(DEGRADED_WRITE, "Form table is missing optional columns", schema.table, {"missing": missing})
        )
    try:
        exists = definition_exists(conn, schema, record)
        if exists:
            statement = build_update(schema, record, now)
            if statement is None:
                action, rowcount = "noop", 0
            else:
                sql, params = statement
                rowcount = db.execute(conn, sql, params, query_name="form_definition.update")
                action = "update"
        else:
            sql, params = build_insert(schema, record, now)
            rowcount = db.execute(conn, sql, params, query_name="form_definition.insert")
            action = "insert"
        conn.commit()
    except psycopg2.Error as exc:
        logger.error("form definition write failed for %s: %s", record.form_id, exc)
        conn.rollback()
        return fail(
            WRITE_FAILURE,
            "Form definition write failed",
            schema.table,
            {"form_id": record.form_id, "error": str(exc).strip()},
            warnings=warnings,
            action=None,
            rowcount=0,
        )
    logger.info("form definition %s %s (%s rows) in %s", record.form_id, action, rowcount, schema.table)
    return ok(warnings=warnings, action=action, rowcount=rowcount)
