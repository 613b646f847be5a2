"""Contracts for the host platform collaborators.

The host owns the application registry, the definition DAOs, the form data
layer and the identity context. Cache-clearing is exposed through explicit
capability interfaces: a collaborator that can drop its caches implements one
(or more) of the protocols below and the cache coordinator calls whichever
shapes it finds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class AppHandle:
    app_id: str
    version: str

    def __post_init__(self) -> None:
        # Versions are opaque tokens, always carried as strings.
        object.__setattr__(self, "version", str(self.version))


@runtime_checkable
class CacheInvalidatable(Protocol):
    def clear_cache(self) -> None: ...


@runtime_checkable
class AppCacheInvalidatable(Protocol):
    def clear_app_cache(self, app_id: str) -> None: ...


@runtime_checkable
class AppVersionCacheInvalidatable(Protocol):
    def clear_app_version_cache(self, app_id: str, version: str) -> None: ...


@runtime_checkable
class EntityCache(Protocol):
    def evict_all(self) -> None: ...


@runtime_checkable
class FormTableCache(Protocol):
    def clear_form_table_cache(self, form_id: str) -> None: ...


class AppRegistry(Protocol):
    def resolve(self, app_id: str, version: str | None = None) -> AppHandle | None: ...

    def current_application(self) -> AppHandle | None: ...


class DefinitionDao(Protocol):
    def load_by_id(self, definition_id: str, app: AppHandle) -> dict | None: ...

    def list(self, app: AppHandle) -> list[dict]: ...

    def add(self, record: dict) -> None: ...

    def update(self, record: dict) -> None: ...


class FormDataDao(Protocol):
    def load_without_transaction(self, form_id: str, table_name: str, primary_key: str) -> Any: ...


class DocumentParser(Protocol):
    def parse(self, text: str) -> Any: ...


class IdentityContext(Protocol):
    def current_identity(self) -> str | None: ...

    def set_thread_identity(self, username: str) -> None: ...

    def clear_thread_identity(self) -> None: ...


@dataclass
class HostContext:
    """Bundle of host collaborators handed to the form creation services."""

    app_registry: AppRegistry
    form_dao: DefinitionDao
    datalist_dao: DefinitionDao
    userview_dao: DefinitionDao
    builder_dao: DefinitionDao
    form_data_dao: FormDataDao
    identity: IdentityContext
    app_service: Any = None
    entity_cache: Optional[EntityCache] = None
    document_parser: Optional[DocumentParser] = None
