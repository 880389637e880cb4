"""Identity provider configuration.

Values are read, highest priority first, from runtime overrides supplied by the
hosting application (or a JSON file named by ``HABIFY_RUNTIME_ENV_FILE``), from
the process environment, and finally from the ``.env`` file shipped with the
build. Runtime overrides allow re-pointing a deployment without rebuilding it.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationMissing

logger = structlog.get_logger()

RUNTIME_ENV_FILE_VAR = "HABIFY_RUNTIME_ENV_FILE"
LEGACY_PREFIX = "vite_"
DEFAULT_PORTS = {"http": 80, "https": 443}


class AuthSettings(BaseSettings):
    """Cognito and session storage configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    cognito_domain: str | None = None
    cognito_user_pool_client_id: str | None = None
    cognito_redirect_uri: str | None = None
    cognito_debug: bool = False

    habify_session_backend: Literal["file", "dynamodb", "memory"] = "file"
    habify_session_file: str = "~/.habify/session.env"
    habify_session_table: str | None = None
    aws_region: str | None = None
    habify_pwa_app_domain: str | None = None


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved settings needed to talk to the identity provider."""

    domain: str
    client_id: str
    redirect_uri: str
    debug: bool = False

    @property
    def authorize_endpoint(self) -> str:
        return f"{self.domain}/oauth2/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.domain}/oauth2/token"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.domain}/logout"


ProviderConfigSource = Callable[[], ProviderConfig]


def _normalize_key(key: str) -> str:
    key = key.strip().lower()
    if key.startswith(LEGACY_PREFIX):
        key = key[len(LEGACY_PREFIX) :]
    return key


def read_runtime_env_file(path: str | Path | None) -> dict[str, str]:
    """Read runtime overrides from a JSON object file."""
    if not path:
        return {}
    env_path = Path(path).expanduser()
    if not env_path.exists():
        logger.warning("runtime_env_file_missing", path=str(env_path))
        return {}
    data = json.loads(env_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Runtime environment file {env_path} must contain a JSON object.")
    return {str(key): str(value) for key, value in data.items() if value is not None}


def load_settings(runtime_env: Mapping[str, str] | None = None) -> AuthSettings:
    """Load settings, letting runtime overrides win over environment and .env values.

    Keys of ``runtime_env`` are environment variable names; the ``VITE_`` prefix
    used by the web build is accepted and ignored.
    """
    overrides = read_runtime_env_file(os.getenv(RUNTIME_ENV_FILE_VAR))
    overrides.update(runtime_env or {})

    known = AuthSettings.model_fields
    init_values = {
        _normalize_key(key): value
        for key, value in overrides.items()
        if _normalize_key(key) in known and value != ""
    }
    return AuthSettings(**init_values)


def _origin(url: str) -> tuple[str, str] | None:
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    scheme = parts.scheme.lower()
    if port == DEFAULT_PORTS.get(scheme):
        port = None
    return scheme, f"{parts.hostname.lower()}:{port or ''}"


def derive_redirect_uri(current_origin: str | None) -> str | None:
    """Derive ``{origin}/login`` for http(s) origins."""
    if not current_origin:
        return None
    parts = urlsplit(current_origin)
    if not parts.scheme.startswith("http") or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}/login"


def resolve_redirect_uri(
    configured_uri: str | None, derived_uri: str | None
) -> str | None:
    """Pick the redirect URI, preferring the same-origin one on mismatch."""
    if not derived_uri:
        return configured_uri
    if not configured_uri:
        return derived_uri

    configured_origin = _origin(configured_uri)
    if configured_origin is None:
        logger.warning("redirect_uri_unparseable", redirect_uri=configured_uri)
        return derived_uri
    if configured_origin != _origin(derived_uri):
        return derived_uri
    return configured_uri


def resolve_provider_config(
    settings: AuthSettings, current_origin: str | None = None
) -> ProviderConfig:
    """Resolve the provider configuration or raise ConfigurationMissing."""
    domain = (settings.cognito_domain or "").strip()
    if domain.endswith("/"):
        domain = domain[:-1]
    client_id = (settings.cognito_user_pool_client_id or "").strip()
    redirect_uri = resolve_redirect_uri(
        settings.cognito_redirect_uri, derive_redirect_uri(current_origin)
    )

    if not domain:
        raise ConfigurationMissing("cognito_domain")
    if not client_id:
        raise ConfigurationMissing("cognito_user_pool_client_id")
    if not redirect_uri:
        raise ConfigurationMissing(
            "cognito_redirect_uri",
            "COGNITO_REDIRECT_URI is not configured and could not be derived.",
        )

    return ProviderConfig(
        domain=domain,
        client_id=client_id,
        redirect_uri=redirect_uri,
        debug=settings.cognito_debug,
    )
