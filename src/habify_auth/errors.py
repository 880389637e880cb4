"""Exception types for the authentication session lifecycle."""


class AuthError(Exception):
    """Base exception for authentication errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationMissing(AuthError):
    """A required provider setting is absent."""

    def __init__(self, setting: str, message: str | None = None):
        self.setting = setting
        super().__init__(message or f"{setting.upper()} is not configured.")


class CryptoUnavailable(AuthError):
    """No cryptographically secure random source is available."""


class CallbackError(AuthError):
    """The login callback could not be trusted or completed."""


class MissingPkceState(CallbackError):
    """Neither the cached nor the returned state carried a code verifier."""

    def __init__(self, message: str = "No PKCE state found. Please start the login again."):
        super().__init__(message)


class StateMismatch(CallbackError):
    """The returned state does not belong to the login started in this session."""

    def __init__(self, message: str = "Invalid OAuth state received."):
        super().__init__(message)


class TokenExchangeFailed(AuthError):
    """The token endpoint rejected the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidTokenResponse(AuthError):
    """The token endpoint answered without usable tokens."""

    def __init__(self, message: str = "The identity provider did not return valid tokens."):
        super().__init__(message)


class InvalidTransition(AuthError):
    """The session controller was asked for a transition its state does not allow."""
