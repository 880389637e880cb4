"""Startup resolution of the stored session."""

from __future__ import annotations

import structlog

from .capabilities import Clock, system_clock
from .id_token import map_id_token_to_user
from .models import AuthUser
from .session_store import SessionStore
from .token_client import TokenExchangeClient

logger = structlog.get_logger()

REFRESH_THRESHOLD_MS = 60_000


class SessionResolver:
    """Decide whether a stored session is usable, needs a refresh, or is gone."""

    def __init__(
        self,
        session_store: SessionStore,
        token_client: TokenExchangeClient,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._session_store = session_store
        self._token_client = token_client
        self._clock = clock

    async def resolve_stored_user(self) -> AuthUser | None:
        """Return the signed-in user, refreshing silently when close to expiry.

        Refresh failures are not raised: the session is cleared and the caller
        sees an anonymous user.
        """
        session = await self._session_store.load_session()
        if session is None:
            return None

        if session.expires_at > self._clock() + REFRESH_THRESHOLD_MS:
            try:
                return map_id_token_to_user(session.id_token)
            except ValueError:
                logger.warning("stored_id_token_unreadable")
                await self._session_store.clear_session()
                return None

        if not session.refresh_token:
            await self._session_store.clear_session()
            return None

        try:
            refreshed = await self._token_client.refresh_session(session.refresh_token)
        except Exception as exc:  # noqa: BLE001 - a failed silent refresh means signed out
            logger.warning("token_refresh_failed", error=type(exc).__name__)
            await self._session_store.clear_session()
            return None
        return refreshed.user
