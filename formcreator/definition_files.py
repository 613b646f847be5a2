"""Filesystem copy of app definitions under app_src/<appId>/<appId>_<version>/."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from formcreator.host import AppHandle
from formcreator.settings import get_app_src_dir


logger = logging.getLogger("formcreator.files")

KIND_DIRS = {
    "form": ("forms",),
    "api": ("builder", "api"),
    "datalist": ("lists",),
    "userview": ("userviews",),
}


def is_safe_definition_id(definition_id: str | None) -> bool:
    """True when the id can name a single file under its kind directory."""
    if not definition_id or definition_id in (".", ".."):
        return False
    return "/" not in definition_id and "\\" not in definition_id


class DefinitionFiles:
    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None

    @property
    def base_dir(self) -> Path:
        return self._base_dir if self._base_dir is not None else get_app_src_dir()

    def app_dir(self, app: AppHandle) -> Path:
        return self.base_dir / app.app_id / f"{app.app_id}_{app.version}"

    def path_for(self, app: AppHandle, kind: str, definition_id: str) -> Path:
        if kind not in KIND_DIRS:
            raise ValueError(f"Unknown definition kind: {kind}")
        if not is_safe_definition_id(definition_id):
            raise ValueError(f"Invalid definition id: {definition_id!r}")
        return self.app_dir(app).joinpath(*KIND_DIRS[kind]) / f"{definition_id}.json"

    def write(self, app: AppHandle, kind: str, definition_id: str, content: str) -> Path:
        """Write ``content`` atomically (temp file + replace)."""
        path = self.path_for(app, kind, definition_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
        logger.info("definition file written: %s", path)
        return path

    def read(self, app: AppHandle, kind: str, definition_id: str) -> str | None:
        path = self.path_for(app, kind, definition_id)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")
