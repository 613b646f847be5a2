"""Environment-driven settings."""

from __future__ import annotations

import os
from pathlib import Path


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def get_app_src_dir() -> Path:
    raw = _env("FORMCREATOR_APP_SRC")
    if raw:
        return Path(raw)
    return Path.cwd() / "wflow" / "app_src"


def get_data_table_prefix() -> str:
    return _env("FORMCREATOR_DATA_TABLE_PREFIX", "app_fd_") or "app_fd_"


def get_form_table_override() -> str | None:
    return _env("FORMCREATOR_FORM_TABLE") or None


def get_system_username() -> str:
    return _env("FORMCREATOR_SYSTEM_USER", "admin") or "admin"


# Key passed to the host data layer to force lazy table creation; never matches a row.
MATERIALIZE_PROBE_KEY = "xyz123"
