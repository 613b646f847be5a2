"""Ensures the reserved "Form Creator" form and its CRUD exist in an application."""

from __future__ import annotations

import logging
from pathlib import Path

from formcreator.artifacts import CrudService
from formcreator.host import AppHandle, HostContext
from formcreator.registration import FormRegistrationService
from formcreator.results import BOOTSTRAP_FAILURE, fail, first_error, issue, ok


logger = logging.getLogger("formcreator.bootstrap")

FORM_CREATOR_ID = "formCreator"
FORM_CREATOR_NAME = "Form Creator"
FORM_CREATOR_TABLE = "form_creator"
RESOURCE_PATH = Path(__file__).resolve().parent / "resources" / "form_creator.json"


def load_form_creator_json(path: Path = RESOURCE_PATH) -> str:
    return path.read_text(encoding="utf-8")


class BootstrapService:
    def __init__(
        self,
        host: HostContext,
        registration: FormRegistrationService,
        crud: CrudService,
        resource_path: Path = RESOURCE_PATH,
    ) -> None:
        self._host = host
        self._registration = registration
        self._crud = crud
        self._resource_path = resource_path

    def is_bootstrapped(self, app: AppHandle) -> bool:
        try:
            found = self._host.form_dao.load_by_id(FORM_CREATOR_ID, app) is not None
        except Exception:
            logger.exception("bootstrap check failed in %s", app.app_id)
            return False
        logger.info("%s present in %s: %s", FORM_CREATOR_ID, app.app_id, found)
        return found

    def ensure(self, app: AppHandle) -> dict:
        """Register the reserved form plus its list and view on first use. Idempotent."""
        if self.is_bootstrapped(app):
            return ok(created=False)

        try:
            form_json = load_form_creator_json(self._resource_path)
        except OSError as exc:
            logger.error("bootstrap resource unreadable: %s", exc)
            return fail(BOOTSTRAP_FAILURE, "Bootstrap form resource missing", str(self._resource_path), created=False)

        registered = self._registration.register(app, FORM_CREATOR_ID, FORM_CREATOR_NAME, FORM_CREATOR_TABLE, form_json)
        if not registered["ok"]:
            err = first_error(registered) or {}
            logger.error("bootstrap registration failed in %s: %s", app.app_id, err.get("message"))
            return fail(
                BOOTSTRAP_FAILURE,
                f"Form creator registration failed: {err.get('message')}",
                FORM_CREATOR_ID,
                {"cause": err},
                warnings=registered["warnings"],
                created=False,
            )
        warnings = list(registered["warnings"])

        crud = self._crud.create(app, FORM_CREATOR_ID, FORM_CREATOR_NAME, form_json)
        warnings.extend(crud["warnings"])
        if not crud["ok"]:
            err = first_error(crud) or {}
            logger.warning("bootstrap CRUD failed in %s (form kept): %s", app.app_id, err.get("message"))
            warnings.append(issue(err.get("code") or BOOTSTRAP_FAILURE, err.get("message") or "CRUD creation failed", FORM_CREATOR_ID))
        else:
            logger.info("bootstrap CRUD ready: datalist=%s userview=%s", crud["datalist_id"], crud["userview_id"])
        return ok(warnings=warnings, created=True)
