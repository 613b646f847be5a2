"""Register forms into a host application and keep its stores and caches coherent."""

from formcreator.form_creation import FormCreationService, build_response
from formcreator.form_request import FormCreationRequest
from formcreator.host import AppHandle, HostContext

__all__ = [
    "AppHandle",
    "FormCreationRequest",
    "FormCreationService",
    "HostContext",
    "build_response",
]
