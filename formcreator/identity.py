"""Scoped privilege elevation over the ambient identity context."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar

from formcreator.settings import get_system_username


logger = logging.getLogger("formcreator.identity")

_CURRENT_USER: ContextVar[str | None] = ContextVar("formcreator_current_user", default=None)


class ContextIdentity:
    """Identity context backed by a ContextVar, so each thread/task sees its own user."""

    def current_identity(self) -> str | None:
        return _CURRENT_USER.get()

    def set_thread_identity(self, username: str) -> None:
        _CURRENT_USER.set(username)

    def clear_thread_identity(self) -> None:
        _CURRENT_USER.set(None)


@contextmanager
def system_identity(identity, username: str | None = None):
    """Run the block as the system user and restore the previous identity on exit."""
    original = identity.current_identity()
    elevated = username or get_system_username()
    identity.set_thread_identity(elevated)
    logger.debug("identity elevated to %s", elevated)
    try:
        yield elevated
    finally:
        if original is not None:
            identity.set_thread_identity(original)
            logger.debug("identity restored to %s", original)
        else:
            identity.clear_thread_identity()
            logger.debug("identity cleared")

