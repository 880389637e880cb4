"""Durable session persistence."""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from .models import Session
from .storage import KeyValueStore

logger = structlog.get_logger()

SESSION_KEY = "habify-cognito-session"


class SessionStore:
    """Single owner of the stored token set.

    Sessions are written and removed as a whole; a record that no longer
    deserializes is reported as absent.
    """

    def __init__(self, durable_store: KeyValueStore) -> None:
        self._store = durable_store

    async def persist_session(self, session: Session) -> None:
        await self._store.set(SESSION_KEY, session.model_dump_json(by_alias=True))

    async def load_session(self) -> Session | None:
        raw = await self._store.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("stored_session_invalid", errors=exc.error_count())
            return None

    async def clear_session(self) -> None:
        await self._store.delete(SESSION_KEY)
