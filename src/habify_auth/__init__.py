"""Habify authentication - OAuth2 PKCE session lifecycle."""

from .controller import AuthSessionController, create_controller
from .errors import (
    AuthError,
    CallbackError,
    ConfigurationMissing,
    CryptoUnavailable,
    InvalidTokenResponse,
    InvalidTransition,
    MissingPkceState,
    StateMismatch,
    TokenExchangeFailed,
)
from .models import AuthStatus, AuthUser, RedirectState, Session

__all__ = [
    "AuthError",
    "AuthSessionController",
    "AuthStatus",
    "AuthUser",
    "CallbackError",
    "ConfigurationMissing",
    "CryptoUnavailable",
    "InvalidTokenResponse",
    "InvalidTransition",
    "MissingPkceState",
    "RedirectState",
    "Session",
    "StateMismatch",
    "TokenExchangeFailed",
    "create_controller",
]
