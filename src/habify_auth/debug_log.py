"""Opt-in debug logging for the login flow.

Core modules never log token material unconditionally. Everything that could
help diagnose a provider misconfiguration goes through :class:`AuthDebugLogger`,
which drops events unless debugging was switched on with ``COGNITO_DEBUG``.
Tokens should always be passed through :func:`mask_token` first.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog

from .models import Session

logger = structlog.get_logger()

SHORT_TOKEN_MASK = "***"


def mask_token(token: str | None) -> str | None:
    """Shorten a token to its first 6 and last 4 characters; short tokens are hidden."""
    if not token:
        return token
    if len(token) <= 10:
        return SHORT_TOKEN_MASK
    return f"{token[:6]}...{token[-4:]}"


def describe_session(session: Session) -> dict[str, Any]:
    """Return a redacted view of a session suitable for logging."""
    return {
        "expires_at": datetime.fromtimestamp(session.expires_at / 1000, tz=UTC).isoformat(),
        "access_token": mask_token(session.access_token),
        "refresh_token": mask_token(session.refresh_token),
        "id_token": mask_token(session.id_token),
    }


class AuthDebugLogger:
    """Debug logger that is silent unless explicitly enabled."""

    def __init__(self, enabled: bool = False, *, log: Any | None = None) -> None:
        self.enabled = enabled
        self._log = log or logger.bind(component="cognito_debug")

    def event(self, title: str, **fields: Any) -> None:
        if not self.enabled:
            return
        self._log.debug(title, **fields)


DISABLED = AuthDebugLogger(False)
