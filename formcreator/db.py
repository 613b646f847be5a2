"""DB helpers for the host Postgres database."""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterable

import psycopg2
import psycopg2.extras
from psycopg2.pool import SimpleConnectionPool
import threading
import logging


def get_db_url() -> str:
    url = os.getenv("FORMCREATOR_DB_URL") or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("FORMCREATOR_DB_URL or DATABASE_URL is required")
    return url


_POOL: SimpleConnectionPool | None = None
_POOL_LOCK = threading.Lock()
_QUERY_LOG: ContextVar[list | None] = ContextVar("formcreator_query_log", default=None)
_logger = logging.getLogger("formcreator.db")
_query_logger = logging.getLogger("formcreator.db.query")
_SLOW_MS = float(os.getenv("FORMCREATOR_QUERY_SLOW_MS", "200"))
_LOG_ALL = os.getenv("FORMCREATOR_QUERY_LOG", "").strip() == "1"
_MAX_PARAM_CHARS = 80


def _redact_params(params: Iterable[Any] | None) -> list[Any] | None:
    # Form documents are bound as parameters; log their size only.
    if params is None:
        return None
    redacted: list[Any] = []
    for val in params:
        if isinstance(val, (bytes, bytearray)):
            redacted.append(f"<bytes:{len(val)}>")
        elif isinstance(val, str) and len(val) > _MAX_PARAM_CHARS:
            redacted.append(f"<text:{len(val)} chars>")
        else:
            redacted.append(val if isinstance(val, (str, int, float, bool, type(None))) else str(val))
    return redacted


def reset_query_log() -> None:
    _QUERY_LOG.set([])


def get_query_log() -> list[str]:
    log = _QUERY_LOG.get()
    return list(log) if isinstance(log, list) else []


def _log_query(
    *,
    query_name: str | None,
    params: Iterable[Any] | None,
    elapsed_ms: float,
    rowcount: int | None,
) -> None:
    log = _QUERY_LOG.get()
    if isinstance(log, list):
        log.append(query_name or "unnamed")
    if not query_name and not _LOG_ALL and elapsed_ms < _SLOW_MS:
        return
    message = {
        "query": query_name or "unnamed",
        "ms": round(elapsed_ms, 2),
        "rowcount": rowcount,
        "params": _redact_params(params),
    }
    if elapsed_ms >= _SLOW_MS:
        _query_logger.warning("db_slow_query=%s", message)
    else:
        _query_logger.info("db_query=%s", message)


def quote_ident(name: str) -> str:
    """Double-quote a catalog identifier for use in generated SQL."""
    return '"' + name.replace('"', '""') + '"'


def init_pool(minconn: int | None = None, maxconn: int | None = None) -> None:
    global _POOL
    with _POOL_LOCK:
        if _POOL is None:
            if minconn is None:
                minconn = int(os.getenv("FORMCREATOR_DB_POOL_MIN", "1"))
            if maxconn is None:
                maxconn = int(os.getenv("FORMCREATOR_DB_POOL_MAX", "10"))
            _POOL = SimpleConnectionPool(minconn, maxconn, dsn=get_db_url())
            _logger.info("db_pool ready min=%s max=%s", minconn, maxconn)


def _get_pool() -> SimpleConnectionPool:
    if _POOL is None:
        init_pool()
    return _POOL


@contextmanager
def get_conn():
    """Borrow a dedicated connection for one registration attempt.

    The connection is transactional (no autocommit) and the caller commits.
    Any exception rolls it back; a connection closed by the server is dropped
    from the pool instead of being reused.
    """
    pool = _get_pool()
    start = time.perf_counter()
    conn = pool.getconn()
    if conn.autocommit:
        conn.autocommit = False
    _logger.debug("db_conn borrowed in %.2fms", (time.perf_counter() - start) * 1000)
    try:
        yield conn
    except Exception:
        if not conn.closed:
            conn.rollback()
        raise
    finally:
        pool.putconn(conn, close=bool(conn.closed))
        _logger.debug("db_conn returned")


def _run(conn, sql: str, params: Iterable[Any] | None, query_name: str | None, fetch: str | None):
    start = time.perf_counter()
    factory = psycopg2.extras.RealDictCursor if fetch else None
    with conn.cursor(cursor_factory=factory) as cur:
        cur.execute(sql, params or [])
        if fetch == "one":
            row = cur.fetchone()
            result = dict(row) if row else None
        elif fetch == "all":
            result = [dict(r) for r in cur.fetchall()]
        else:
            result = cur.rowcount
        rowcount = cur.rowcount
    _log_query(
        query_name=query_name,
        params=params,
        elapsed_ms=(time.perf_counter() - start) * 1000,
        rowcount=rowcount,
    )
    return result


def fetch_one(conn, sql: str, params: Iterable[Any] | None = None, query_name: str | None = None) -> dict | None:
    return _run(conn, sql, params, query_name, "one")


def fetch_all(conn, sql: str, params: Iterable[Any] | None = None, query_name: str | None = None) -> list[dict]:
    return _run(conn, sql, params, query_name, "all")


def execute(conn, sql: str, params: Iterable[Any] | None = None, query_name: str | None = None) -> int:
    """Run a statement and return its rowcount. Does not commit."""
    return _run(conn, sql, params, query_name, None)
