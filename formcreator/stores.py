"""Host collaborators for standalone use and tests.

``FormDefinitionTableDao`` reads form definitions straight from the
discovered definition table and keeps a read cache in front of it, the way
the host's own DAO does. The remaining stores keep their state in memory.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Tuple

from formcreator import db
from formcreator.db import quote_ident
from formcreator.definition_writer import FormDefinitionRecord, upsert_definition
from formcreator.host import AppHandle
from formcreator.results import first_error
from formcreator.schema_discovery import DiscoveredSchema, discover_schema
from formcreator.settings import get_form_table_override


logger = logging.getLogger("formcreator.stores")

_MISSING = object()


class MemoryAppRegistry:
    def __init__(self, apps: List[AppHandle] | None = None, current: AppHandle | None = None) -> None:
        self._apps: List[AppHandle] = list(apps or [])
        if current is not None and current not in self._apps:
            self._apps.append(current)
        self.current: AppHandle | None = current

    def add(self, app: AppHandle) -> None:
        if app not in self._apps:
            self._apps.append(app)

    def resolve(self, app_id: str, version: str | None = None) -> AppHandle | None:
        matches = [a for a in self._apps if a.app_id == app_id]
        if version is not None:
            matches = [a for a in matches if a.version == str(version)]
        # Without a version the most recently added one wins.
        return matches[-1] if matches else None

    def current_application(self) -> AppHandle | None:
        return self.current


class MemoryDefinitionDao:
    """Definition records of one kind (datalist, userview, builder) keyed per app version."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._records: Dict[Tuple[str, str], Dict[str, dict]] = {}
        self.cache_clears = 0

    def _bucket(self, app_id: str, version: str) -> Dict[str, dict]:
        return self._records.setdefault((app_id, str(version)), {})

    def load_by_id(self, definition_id: str, app: AppHandle) -> dict | None:
        rec = self._bucket(app.app_id, app.version).get(definition_id)
        return copy.deepcopy(rec) if rec else None

    def list(self, app: AppHandle) -> list[dict]:
        return [copy.deepcopy(v) for v in self._bucket(app.app_id, app.version).values()]

    def add(self, record: dict) -> None:
        bucket = self._bucket(record["app_id"], record["app_version"])
        if record["id"] in bucket:
            raise KeyError(f"{self.kind} already exists: {record['id']}")
        bucket[record["id"]] = copy.deepcopy(record)

    def update(self, record: dict) -> None:
        bucket = self._bucket(record["app_id"], record["app_version"])
        if record["id"] not in bucket:
            raise KeyError(f"{self.kind} not found: {record['id']}")
        bucket[record["id"]] = copy.deepcopy(record)

    def clear_cache(self) -> None:
        self.cache_clears += 1


class FormDefinitionTableDao:
    """Form definitions read through the discovered definition table, with a read cache.

    Misses are cached too, so a row written behind this DAO's back stays
    invisible until ``clear_cache`` runs.
    """

    def __init__(self, connect: Callable | None = None, form_table: str | None = None) -> None:
        self._connect = connect or db.get_conn
        self._form_table = form_table
        self._cache: Dict[Tuple[str, str, str], Any] = {}

    def _schema(self, conn) -> DiscoveredSchema | None:
        found = discover_schema(conn, override=self._form_table or get_form_table_override())
        return found["schema"] if found["ok"] else None

    @staticmethod
    def _to_record(schema: DiscoveredSchema, row: dict) -> dict:
        return {role: row.get(col) for role, col in schema.roles.items()}

    def load_by_id(self, definition_id: str, app: AppHandle) -> dict | None:
        key = (definition_id, app.app_id, app.version)
        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            return copy.deepcopy(cached)
        with self._connect() as conn:
            schema = self._schema(conn)
            row = None
            if schema is not None:
                row = db.fetch_one(
                    conn,
                    f"select * from {quote_ident(schema.table)} where "
                    f"{quote_ident(schema.column('id'))} = %s and {quote_ident(schema.column('app_id'))} = %s "
                    f"and {quote_ident(schema.column('app_version'))} = %s limit 1",
                    [definition_id, app.app_id, app.version],
                    query_name="form_definition.load",
                )
            conn.rollback()
        record = self._to_record(schema, row) if row else None
        self._cache[key] = record
        return copy.deepcopy(record)

    def list(self, app: AppHandle) -> list[dict]:
        with self._connect() as conn:
            schema = self._schema(conn)
            rows: list[dict] = []
            if schema is not None:
                rows = db.fetch_all(
                    conn,
                    f"select * from {quote_ident(schema.table)} where "
                    f"{quote_ident(schema.column('app_id'))} = %s and {quote_ident(schema.column('app_version'))} = %s "
                    f"order by {quote_ident(schema.column('id'))}",
                    [app.app_id, app.version],
                    query_name="form_definition.list",
                )
            conn.rollback()
        return [self._to_record(schema, r) for r in rows]

    def _save(self, record: dict) -> None:
        with self._connect() as conn:
            schema = self._schema(conn)
            if schema is None:
                conn.rollback()
                raise LookupError("No form definition table found")
            result = upsert_definition(
                conn,
                schema,
                FormDefinitionRecord(
                    form_id=record["id"],
                    app_id=record["app_id"],
                    app_version=str(record["app_version"]),
                    name=record.get("name"),
                    table_name=record.get("table_name"),
                    json=record.get("json") or "",
                ),
            )
        if not result["ok"]:
            raise RuntimeError((first_error(result) or {}).get("message"))
        self.clear_cache()

    def add(self, record: dict) -> None:
        self._save(record)

    def update(self, record: dict) -> None:
        self._save(record)

    def clear_cache(self) -> None:
        self._cache.clear()


class MemoryFormDataDao:
    """Form data layer stand-in. ``on_load`` lets the caller create tables lazily."""

    def __init__(self, on_load: Callable[[str, str, str], Any] | None = None) -> None:
        self._on_load = on_load
        self.loads: List[Tuple[str, str, str]] = []
        self.table_cache_clears: List[str] = []

    def load_without_transaction(self, form_id: str, table_name: str, primary_key: str) -> Any:
        self.loads.append((form_id, table_name, primary_key))
        if self._on_load is not None:
            return self._on_load(form_id, table_name, primary_key)
        return None

    def clear_form_table_cache(self, form_id: str) -> None:
        self.table_cache_clears.append(form_id)


class MemoryAppService:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def clear_cache(self) -> None:
        self.calls.append(("clear_cache",))

    def clear_app_cache(self, app_id: str) -> None:
        self.calls.append(("clear_app_cache", app_id))

    def clear_app_version_cache(self, app_id: str, version: str) -> None:
        self.calls.append(("clear_app_version_cache", app_id, version))


class MemoryEntityCache:
    def __init__(self) -> None:
        self.evictions = 0

    def evict_all(self) -> None:
        self.evictions += 1
