"""Catalog probing for the form definition table and its column roles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from formcreator import db
from formcreator.results import SCHEMA_DISCOVERY_FAILURE, fail, ok


logger = logging.getLogger("formcreator.schema")

FORM_TABLE_CANDIDATES = (
    "app_fd_form",
    "app_form",
    "formdefinition",
    "form_definition",
    "wf_form_definition",
    "app_form_definition",
    "dir_form",
)

ROLE_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "formId", "form_id"),
    "app_id": ("appId", "app_id"),
    "app_version": ("appVersion", "version", "app_version"),
    "name": ("name", "formName", "form_name"),
    "table_name": ("tableName", "table_name"),
    "json": ("json", "definition", "form_json"),
    "date_created": ("dateCreated", "created", "date_created"),
    "date_modified": ("dateModified", "modified", "date_modified"),
}

KEY_ROLES = ("id", "app_id", "app_version")


@dataclass(frozen=True)
class DiscoveredSchema:
    table: str
    columns: Tuple[str, ...]
    roles: Dict[str, str] = field(default_factory=dict)

    def column(self, role: str) -> str | None:
        return self.roles.get(role)

    @property
    def has_key(self) -> bool:
        return all(self.roles.get(role) for role in KEY_ROLES)

    def missing_roles(self) -> List[str]:
        return [role for role in ROLE_CANDIDATES if role not in self.roles]

    def role_columns(self) -> List[Tuple[str, str]]:
        """(role, column) pairs for every resolved role, in table column order."""
        by_column = {col: role for role, col in self.roles.items()}
        return [(by_column[col], col) for col in self.columns if col in by_column]


def find_table(conn, name: str) -> str | None:
    """Return the catalog spelling of base table ``name`` (case-insensitive), or None."""
    row = db.fetch_one(
        conn,
        """
        select table_name
        from information_schema.tables
        where table_schema = current_schema()
          and table_type = 'BASE TABLE'
          and lower(table_name) = lower(%s)
        order by table_name
        limit 1
        """,
        [name],
        query_name="catalog.table_lookup",
    )
    return row["table_name"] if row else None


def list_tables(conn) -> List[str]:
    rows = db.fetch_all(
        conn,
        """
        select table_name
        from information_schema.tables
        where table_schema = current_schema()
          and table_type = 'BASE TABLE'
        order by table_name
        """,
        query_name="catalog.tables",
    )
    return [r["table_name"] for r in rows]


def list_columns(conn, table: str) -> List[str]:
    rows = db.fetch_all(
        conn,
        """
        select column_name
        from information_schema.columns
        where table_schema = current_schema()
          and table_name = %s
        order by ordinal_position
        """,
        [table],
        query_name="catalog.columns",
    )
    return [r["column_name"] for r in rows]


def looks_like_form_table(columns: Iterable[str]) -> bool:
    lowered = {c.lower() for c in columns}
    has_id = "id" in lowered or "formid" in lowered
    has_json = "json" in lowered
    has_app = "appid" in lowered or "app_id" in lowered
    return has_id and (has_json or has_app)


def _is_pattern_candidate(table: str) -> bool:
    name = table.lower()
    return "form" in name and ("def" in name or "app" in name)


def find_column(columns: Iterable[str], candidates: Iterable[str]) -> str | None:
    columns = list(columns)
    for candidate in candidates:
        for col in columns:
            if col.lower() == candidate.lower():
                return col
    return None


def map_roles(columns: Iterable[str]) -> Dict[str, str]:
    columns = list(columns)
    roles: Dict[str, str] = {}
    for role, candidates in ROLE_CANDIDATES.items():
        col = find_column(columns, candidates)
        if col is not None:
            roles[role] = col
    return roles


def find_form_table(conn, override: str | None = None) -> str | None:
    if override:
        table = find_table(conn, override)
        if table and looks_like_form_table(list_columns(conn, table)):
            logger.info("form table from configuration: %s", table)
            return table
        logger.warning("configured form table %s missing or unrecognised; discovering", override)

    for candidate in FORM_TABLE_CANDIDATES:
        table = find_table(conn, candidate)
        if table:
            logger.info("form table exact match: %s", table)
            return table

    for table in list_tables(conn):
        if not _is_pattern_candidate(table):
            continue
        if looks_like_form_table(list_columns(conn, table)):
            logger.info("form table by pattern: %s", table)
            return table
    return None


def discover_schema(conn, override: str | None = None) -> dict:
    """Return ``{"ok", "schema", "errors"}`` for the form definition table."""
    table = find_form_table(conn, override=override)
    if table is None:
        logger.warning("no form definition table found; registration target unavailable")
        return fail(SCHEMA_DISCOVERY_FAILURE, "No form definition table found", schema=None)
    columns = tuple(list_columns(conn, table))
    schema = DiscoveredSchema(table=table, columns=columns, roles=map_roles(columns))
    logger.info("form table %s columns=%s roles=%s", table, list(columns), schema.roles)
    if not schema.has_key:
        missing = [role for role in KEY_ROLES if role not in schema.roles]
        return fail(
            SCHEMA_DISCOVERY_FAILURE,
            f"Form table {table} is missing key columns",
            detail={"table": table, "missing": missing},
            schema=schema,
        )
    return ok(schema=schema)
