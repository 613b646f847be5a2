"""Cache coherence after raw definition writes, plus data table materialization."""

from __future__ import annotations

import logging
from typing import Callable, List

import psycopg2

from formcreator import db
from formcreator.host import (
    AppCacheInvalidatable,
    AppHandle,
    AppVersionCacheInvalidatable,
    CacheInvalidatable,
    EntityCache,
    FormTableCache,
    HostContext,
)
from formcreator.results import CACHE_SYNC_FAILURE, MATERIALIZATION_FAILURE, Issue, fail, issue, ok
from formcreator.schema_discovery import find_table
from formcreator.settings import MATERIALIZE_PROBE_KEY, get_data_table_prefix


logger = logging.getLogger("formcreator.cache")


class CacheCoordinator:
    """Sweeps host caches after a write made outside the host's persistence API.

    Every invalidation step is best-effort: a failing step is logged and
    reported as a ``CACHE_SYNC_FAILURE`` warning. Materialization is not: the
    physical data table must be visible in the catalog afterwards.
    """

    def __init__(self, host: HostContext, connect: Callable | None = None, data_table_prefix: str | None = None) -> None:
        self._host = host
        self._connect = connect or db.get_conn
        self._prefix = data_table_prefix

    @property
    def data_table_prefix(self) -> str:
        return self._prefix if self._prefix is not None else get_data_table_prefix()

    def physical_table(self, table_name: str) -> str:
        return f"{self.data_table_prefix}{table_name}"

    def _step(self, warnings: List[Issue], label: str, fn: Callable[[], None]) -> None:
        try:
            fn()
            logger.info("cache step ok: %s", label)
        except Exception as exc:
            logger.warning("cache step failed (continuing): %s: %s", label, exc)
            warnings.append(issue(CACHE_SYNC_FAILURE, f"{label} failed", label, {"error": str(exc)}))

    def invalidate(self, app: AppHandle, dao=None) -> List[Issue]:
        """Evict entity, DAO and app-service caches. Returns warnings."""
        warnings: List[Issue] = []
        cache = self._host.entity_cache
        if isinstance(cache, EntityCache):
            self._step(warnings, "entity_cache.evict_all", cache.evict_all)

        dao = dao if dao is not None else self._host.form_dao
        if isinstance(dao, CacheInvalidatable):
            self._step(warnings, "dao.clear_cache", dao.clear_cache)

        service = self._host.app_service
        if isinstance(service, CacheInvalidatable):
            self._step(warnings, "app_service.clear_cache", service.clear_cache)
        if isinstance(service, AppCacheInvalidatable):
            self._step(warnings, "app_service.clear_app_cache", lambda: service.clear_app_cache(app.app_id))
        if isinstance(service, AppVersionCacheInvalidatable):
            self._step(
                warnings,
                "app_service.clear_app_version_cache",
                lambda: service.clear_app_version_cache(app.app_id, app.version),
            )
        return warnings

    def table_exists(self, physical_table: str) -> bool:
        with self._connect() as conn:
            found = find_table(conn, physical_table)
            conn.rollback()
        return found is not None

    def materialize(self, form_id: str, table_name: str) -> dict:
        """Force the host to create ``<prefix><table_name>`` and verify it exists."""
        warnings: List[Issue] = []
        data_dao = self._host.form_data_dao
        if isinstance(data_dao, FormTableCache):
            self._step(warnings, "form_data.clear_form_table_cache", lambda: data_dao.clear_form_table_cache(form_id))
        try:
            data_dao.load_without_transaction(form_id, table_name, MATERIALIZE_PROBE_KEY)
            logger.info("table creation triggered for form %s", form_id)
        except Exception as exc:
            logger.warning("probe load for %s raised: %s", form_id, exc)

        physical = self.physical_table(table_name)
        try:
            exists = self.table_exists(physical)
        except psycopg2.Error as exc:
            logger.error("table verification failed for %s: %s", physical, exc)
            return fail(
                MATERIALIZATION_FAILURE,
                "Could not verify data table",
                physical,
                {"error": str(exc).strip()},
                warnings=warnings,
                table=physical,
            )
        if not exists:
            logger.error("data table does not exist after forced creation: %s", physical)
            return fail(MATERIALIZATION_FAILURE, "Data table was not created", physical, warnings=warnings, table=physical)
        logger.info("data table verified: %s", physical)
        return ok(warnings=warnings, table=physical)

    def sync(self, app: AppHandle, form_id: str, table_name: str) -> dict:
        warnings = self.invalidate(app)
        result = self.materialize(form_id, table_name)
        result["warnings"] = warnings + result.get("warnings", [])
        return result
