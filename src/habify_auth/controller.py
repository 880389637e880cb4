"""Auth session controller - the interface the application consumes."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from functools import partial

import httpx
import structlog

from .authorize import AuthorizeUrlBuilder, LoginMode
from .capabilities import (
    BrowserNavigator,
    Clock,
    Navigator,
    RandomSource,
    system_clock,
    system_random,
)
from .config import AuthSettings, ProviderConfigSource, load_settings, resolve_provider_config
from .debug_log import AuthDebugLogger, describe_session
from .errors import InvalidTransition
from .models import AuthStatus, AuthUser
from .resolver import SessionResolver
from .session_store import SessionStore
from .storage import KeyValueStore, MemoryKeyValueStore, create_durable_store
from .token_client import TokenExchangeClient

logger = structlog.get_logger()

UserListener = Callable[[AuthUser | None], None]

TRANSIENT = frozenset({AuthStatus.RESOLVING, AuthStatus.REFRESHING})


class AuthSessionController:
    """Owns the in-memory user and drives login, callback, refresh and logout.

    Status transitions::

        UNRESOLVED -> RESOLVING -> AUTHENTICATED | ANONYMOUS
        AUTHENTICATED -> REFRESHING -> AUTHENTICATED | ANONYMOUS
        AUTHENTICATED -> ANONYMOUS (logout)

    A completed login callback moves any settled status to AUTHENTICATED.
    """

    def __init__(
        self,
        urls: AuthorizeUrlBuilder,
        token_client: TokenExchangeClient,
        session_store: SessionStore,
        resolver: SessionResolver,
        navigator: Navigator,
        *,
        config_source: ProviderConfigSource | None = None,
        debug: AuthDebugLogger | None = None,
    ) -> None:
        self._urls = urls
        self._token_client = token_client
        self._session_store = session_store
        self._resolver = resolver
        self._navigator = navigator
        self._config_source = config_source
        self._debug = debug
        self._status = AuthStatus.UNRESOLVED
        self._user: AuthUser | None = None
        self._listeners: list[UserListener] = []

    @property
    def status(self) -> AuthStatus:
        return self._status

    @property
    def user(self) -> AuthUser | None:
        return self._user

    @property
    def current_user(self) -> AuthUser | None:
        return self._user

    @property
    def is_loading(self) -> bool:
        return self._status in (AuthStatus.UNRESOLVED, AuthStatus.RESOLVING)

    def subscribe(self, listener: UserListener) -> Callable[[], None]:
        """Register a callback for user changes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _settle(self, user: AuthUser | None) -> None:
        self._status = AuthStatus.AUTHENTICATED if user else AuthStatus.ANONYMOUS
        changed = user != self._user
        self._user = user
        if changed:
            for listener in list(self._listeners):
                listener(user)

    def _require_settled(self, operation: str) -> None:
        if self._status in TRANSIENT:
            raise InvalidTransition(f"Cannot {operation} while session is {self._status.value}.")

    async def initialize(self) -> AuthUser | None:
        """Restore the user from storage. Runs once; later calls return the current user."""
        if self._status is not AuthStatus.UNRESOLVED:
            return self._user

        self._status = AuthStatus.RESOLVING
        try:
            user = await self._resolver.resolve_stored_user()
        except Exception:
            self._status = AuthStatus.UNRESOLVED
            raise
        self._settle(user)
        return user

    async def begin_login(self, mode: LoginMode = "login", redirect_path: str | None = None) -> str:
        """Send the user agent to the provider's login (or sign-up) page."""
        url = await self._urls.build_authorize_url(mode, redirect_path)
        self._navigator.navigate(url)
        return url

    async def login(self, redirect_path: str | None = None) -> str:
        return await self.begin_login("login", redirect_path)

    async def register(self, redirect_path: str | None = None) -> str:
        return await self.begin_login("register", redirect_path)

    async def complete_login(self, code: str, state: str | None = None) -> str | None:
        """Redeem the callback code and return the path to continue to."""
        self._require_settled("complete login")
        result = await self._token_client.exchange_authorization_code(code, state)
        self._settle(result.user)
        return result.redirect_path

    async def refresh(self) -> AuthUser | None:
        """Force a token refresh; failure signs the user out instead of raising."""
        if self._status is not AuthStatus.AUTHENTICATED:
            raise InvalidTransition(f"Cannot refresh while session is {self._status.value}.")

        self._status = AuthStatus.REFRESHING
        result = None
        try:
            session = await self._session_store.load_session()
            if session is not None and session.refresh_token:
                result = await self._token_client.refresh_session(session.refresh_token)
        except Exception as exc:  # noqa: BLE001 - a failed refresh means signed out
            logger.warning("token_refresh_failed", error=type(exc).__name__)

        if result is None:
            try:
                await self._session_store.clear_session()
            finally:
                self._settle(None)
            return None

        self._settle(result.user)
        return result.user

    async def logout(self) -> str:
        """Forget the session locally and end it at the provider."""
        self._require_settled("log out")
        await self._session_store.clear_session()
        self._settle(None)
        url = self._urls.build_logout_url()
        self._navigator.navigate(url)
        return url

    async def log_debug_info(self) -> None:
        """Emit the active configuration and a redacted stored session."""
        if self._debug is None or not self._debug.enabled or self._config_source is None:
            return
        config = self._config_source()
        stored = await self._session_store.load_session()
        self._debug.event(
            "current_configuration",
            domain=config.domain,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            status=self._status.value,
            has_stored_session=stored is not None,
            stored_session=describe_session(stored) if stored else "none",
        )


def create_controller(
    settings: AuthSettings | None = None,
    *,
    runtime_env: Mapping[str, str] | None = None,
    current_origin: str | None = None,
    navigator: Navigator | None = None,
    durable_store: KeyValueStore | None = None,
    short_lived_store: KeyValueStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock = system_clock,
    random_source: RandomSource = system_random,
) -> AuthSessionController:
    """Wire a controller from settings and default capabilities."""
    settings = settings or load_settings(runtime_env)
    config_source = partial(resolve_provider_config, settings, current_origin)
    debug = AuthDebugLogger(settings.cognito_debug)

    short_lived = short_lived_store or MemoryKeyValueStore()
    session_store = SessionStore(durable_store or create_durable_store(settings))
    urls = AuthorizeUrlBuilder(
        config_source, short_lived, random_source=random_source, debug=debug
    )
    token_client = TokenExchangeClient(
        config_source,
        session_store,
        short_lived,
        clock=clock,
        debug=debug,
        http_client=http_client,
    )
    resolver = SessionResolver(session_store, token_client, clock=clock)
    return AuthSessionController(
        urls,
        token_client,
        session_store,
        resolver,
        navigator or BrowserNavigator(),
        config_source=config_source,
        debug=debug,
    )
