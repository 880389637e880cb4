"""Pydantic models for sessions, redirect state and token responses."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PkceArtifact(BaseModel):
    """Code verifier and its S256 challenge for one login attempt."""

    model_config = ConfigDict(frozen=True)

    code_verifier: str
    code_challenge: str


class RedirectState(BaseModel):
    """Data carried through the provider redirect in the `state` parameter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code_verifier: str = Field(alias="codeVerifier", min_length=1)
    redirect_path: str | None = Field(default=None, alias="redirectPath")


class Session(BaseModel):
    """Token set persisted in durable storage.

    Stored with camelCase keys; ``expires_at`` is epoch milliseconds.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id_token: str = Field(alias="idToken")
    access_token: str = Field(alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_at: int = Field(alias="expiresAt")


class AuthUser(BaseModel):
    """Identity derived from the current id token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str


class TokenResponse(BaseModel):
    """OAuth token endpoint response."""

    id_token: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int
    token_type: str | None = None


class TokenResult(BaseModel):
    """Outcome of a successful token request."""

    session: Session
    user: AuthUser


class ExchangeResult(TokenResult):
    """Outcome of an authorization code exchange."""

    redirect_path: str | None = None


class AuthStatus(str, Enum):
    """Session status as seen by the controller."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    ANONYMOUS = "anonymous"
