"""Form creation orchestration.

A request moves through ``validating -> resolving_target -> bootstrapping ->
registering -> creating_dependents -> done``; any stage may end in
``failed``. Definition registration failures abort the request. Endpoint and
CRUD failures are reported as warnings and the response status becomes
``partial``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List

from formcreator import db
from formcreator.artifacts import ApiEndpointService, CrudService, DatalistService, UserviewService
from formcreator.bootstrap import BootstrapService
from formcreator.cache_sync import CacheCoordinator
from formcreator.definition_files import DefinitionFiles
from formcreator.form_request import FormCreationRequest, validate_request
from formcreator.host import AppHandle, HostContext
from formcreator.identity import system_identity
from formcreator.registration import FormRegistrationService
from formcreator.results import (
    PROCESSING_FAILURE,
    TARGET_RESOLUTION_FAILURE,
    Issue,
    fail,
    first_error,
    issue,
    ok,
)


logger = logging.getLogger("formcreator.creation")

STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"
STATUS_ERROR = "error"

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred while creating the form"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_response(
    status: str,
    form_id: str | None = None,
    api_id: str | None = None,
    datalist_id: str | None = None,
    userview_id: str | None = None,
    message: str | None = None,
    errors: List[Issue] | None = None,
    warnings: List[Issue] | None = None,
) -> dict:
    errors = list(errors or [])
    first = errors[0] if errors else None
    return {
        "ok": status != STATUS_ERROR,
        "status": status,
        "form_id": form_id,
        "api_id": api_id,
        "datalist_id": datalist_id,
        "userview_id": userview_id,
        "message": message,
        "error_type": first["code"] if first and status == STATUS_ERROR else None,
        "error_message": first["message"] if first and status == STATUS_ERROR else None,
        "errors": errors,
        "warnings": list(warnings or []),
        "timestamp": _now(),
    }


class FormCreationService:
    def __init__(
        self,
        host: HostContext,
        connect: Callable | None = None,
        files: DefinitionFiles | None = None,
        form_table: str | None = None,
        data_table_prefix: str | None = None,
    ) -> None:
        self._host = host
        files = files or DefinitionFiles()
        self.coordinator = CacheCoordinator(host, connect=connect, data_table_prefix=data_table_prefix)
        self.registration = FormRegistrationService(
            host, connect=connect, coordinator=self.coordinator, files=files, form_table=form_table
        )
        self.api_endpoints = ApiEndpointService(host, self.coordinator, files)
        self.crud = CrudService(
            DatalistService(host, self.coordinator, files),
            UserviewService(host, self.coordinator, files),
        )
        self.bootstrap = BootstrapService(host, self.registration, self.crud)

    def resolve_target(
        self,
        request: FormCreationRequest,
        app_id: str | None = None,
        version: str | None = None,
    ) -> dict:
        """Resolve the target application field by field.

        The request's app id and version each win over the caller's, and the
        current application is used only when neither names an app id.
        """
        registry = self._host.app_registry
        source = "request" if request.target_app_id else "override"
        target_id = request.target_app_id or app_id
        target_version = request.target_app_version or version
        if target_id:
            app = registry.resolve(target_id, target_version)
            if app is None:
                return fail(
                    TARGET_RESOLUTION_FAILURE,
                    f"Target application not found: {target_id}",
                    "targetAppId",
                    {"source": source, "app_id": target_id, "version": target_version},
                )
            logger.info("target app from %s: %s v%s", source, app.app_id, app.version)
            return ok(app=app)

        app = registry.current_application()
        if app is None:
            return fail(TARGET_RESOLUTION_FAILURE, "No target application could be determined", "targetAppId")
        logger.info("target app from current context: %s v%s", app.app_id, app.version)
        return ok(app=app)

    def create_form(
        self,
        request: FormCreationRequest | dict,
        target_app_id: str | None = None,
        target_app_version: str | None = None,
    ) -> dict:
        db.reset_query_log()
        form_id = request.get("formId") if isinstance(request, dict) else request.form_id
        try:
            if isinstance(request, dict):
                request = FormCreationRequest.from_payload(request)
                form_id = request.form_id
            with system_identity(self._host.identity):
                return self._create(request, target_app_id, target_app_version)
        except Exception:
            logger.exception("form creation failed unexpectedly for %s", form_id)
            return build_response(
                STATUS_ERROR,
                form_id=form_id,
                message=GENERIC_FAILURE_MESSAGE,
                errors=[issue(PROCESSING_FAILURE, GENERIC_FAILURE_MESSAGE)],
            )

    def _failed(self, stage: str, request: FormCreationRequest, result: dict, warnings: List[Issue] | None = None) -> dict:
        err = first_error(result) or {}
        logger.warning("form_creation state=failed stage=%s form_id=%s error=%s", stage, request.form_id, err.get("code"))
        return build_response(
            STATUS_ERROR,
            form_id=request.form_id,
            message=err.get("message"),
            errors=result.get("errors"),
            warnings=(warnings or []) + list(result.get("warnings") or []),
        )

    def _create(self, request: FormCreationRequest, target_app_id: str | None, target_app_version: str | None) -> dict:
        logger.info("form_creation state=validating form_id=%s", request.form_id)
        errors = validate_request(request, self._host.document_parser)
        if errors:
            return self._failed("validating", request, {"errors": errors})

        logger.info("form_creation state=resolving_target form_id=%s", request.form_id)
        target = self.resolve_target(request, target_app_id, target_app_version)
        if not target["ok"]:
            return self._failed("resolving_target", request, target)
        app: AppHandle = target["app"]

        logger.info("form_creation state=bootstrapping app=%s", app.app_id)
        booted = self.bootstrap.ensure(app)
        if not booted["ok"]:
            return self._failed("bootstrapping", request, booted)
        warnings: List[Issue] = list(booted["warnings"])

        logger.info("form_creation state=registering form_id=%s", request.form_id)
        registered = self.registration.register(
            app, request.form_id, request.form_name, request.table_name, request.form_definition
        )
        if not registered["ok"]:
            return self._failed("registering", request, registered, warnings)
        warnings.extend(registered["warnings"])

        created: dict[str, Any] = {"api_id": None, "datalist_id": None, "userview_id": None}
        degraded = False
        if request.create_api_endpoint or request.create_crud:
            logger.info("form_creation state=creating_dependents form_id=%s", request.form_id)
        if request.create_api_endpoint:
            api = self.api_endpoints.create(app, request.form_id, request.form_name, request.api_name)
            warnings.extend(api["warnings"])
            if api["ok"]:
                created["api_id"] = api["api_id"]
            else:
                degraded = True
                warnings.extend(api["errors"])
        if request.create_crud:
            crud = self.crud.create(
                app,
                request.form_id,
                request.form_name,
                request.form_definition,
                datalist_name=request.datalist_name,
                userview_name=request.userview_name,
            )
            warnings.extend(crud["warnings"])
            created["datalist_id"] = crud.get("datalist_id")
            created["userview_id"] = crud.get("userview_id")
            if not crud["ok"]:
                degraded = True
                warnings.extend(crud["errors"])

        status = STATUS_PARTIAL if degraded else STATUS_SUCCESS
        logger.info(
            "form_creation state=done form_id=%s status=%s queries=%d",
            request.form_id,
            status,
            len(db.get_query_log()),
        )
        message = "Form created with errors in dependent artifacts" if degraded else "Form created successfully"
        return build_response(
            status,
            form_id=request.form_id,
            message=message,
            warnings=warnings,
            **created,
        )
