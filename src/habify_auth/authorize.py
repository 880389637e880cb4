"""Authorization and logout URL construction."""

from __future__ import annotations

from typing import Literal
from urllib.parse import urlencode

from .capabilities import RandomSource, system_random
from .config import ProviderConfigSource
from .debug_log import DISABLED, AuthDebugLogger
from .models import RedirectState
from .pkce import create_pkce_artifact
from .state import PKCE_STATE_KEY, encode_state
from .storage import KeyValueStore

SCOPES = ("email", "openid", "profile")

LoginMode = Literal["login", "register"]


class AuthorizeUrlBuilder:
    """Build provider URLs and keep the in-flight PKCE state."""

    def __init__(
        self,
        config_source: ProviderConfigSource,
        short_lived_store: KeyValueStore,
        *,
        random_source: RandomSource = system_random,
        debug: AuthDebugLogger = DISABLED,
    ) -> None:
        self._config_source = config_source
        self._short_lived_store = short_lived_store
        self._random_source = random_source
        self._debug = debug

    async def build_authorize_url(
        self, mode: LoginMode = "login", redirect_path: str | None = None
    ) -> str:
        """Start a login attempt and return the authorize URL.

        Any previously cached state is overwritten, so only the most recent
        attempt in this session can complete.
        """
        config = self._config_source()
        pkce = create_pkce_artifact(self._random_source)
        state = encode_state(
            RedirectState(code_verifier=pkce.code_verifier, redirect_path=redirect_path)
        )
        await self._short_lived_store.set(PKCE_STATE_KEY, state)

        params = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "scope": " ".join(SCOPES),
            "state": state,
            "code_challenge_method": "S256",
            "code_challenge": pkce.code_challenge,
        }
        if mode == "register":
            params["screen_hint"] = "signup"

        self._debug.event(
            "authorize_url_built",
            mode=mode,
            domain=config.domain,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            redirect_path=redirect_path or "none",
            code_challenge=pkce.code_challenge,
            authorize_url=config.authorize_endpoint,
        )
        return f"{config.authorize_endpoint}?{urlencode(params)}"

    def build_logout_url(self) -> str:
        config = self._config_source()
        params = {"client_id": config.client_id, "logout_uri": config.redirect_uri}
        self._debug.event(
            "logout_url_built",
            domain=config.domain,
            client_id=config.client_id,
            logout_uri=config.redirect_uri,
            logout_url=config.logout_endpoint,
        )
        return f"{config.logout_endpoint}?{urlencode(params)}"
