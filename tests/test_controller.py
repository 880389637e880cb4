"""Tests for the auth session controller."""

from urllib.parse import parse_qs, urlsplit

import pytest

from habify_auth.controller import create_controller
from habify_auth.errors import InvalidTransition, StateMismatch, TokenExchangeFailed
from habify_auth.models import AuthStatus, AuthUser, RedirectState
from habify_auth.state import PKCE_STATE_KEY, decode_state, encode_state
from habify_auth.storage import MemoryKeyValueStore
from tests.fixtures.token_fixtures import (
    NOW_MS,
    REFRESH_RESPONSE,
    TOKEN_RESPONSE,
    stored_session,
)
from tests.helpers import FakeClock, RecordingNavigator

ADA = AuthUser(id="user-123", email="ada@example.com")


def _state_from(url: str) -> str:
    return parse_qs(urlsplit(url).query)["state"][0]


class TestInitialize:
    """Test AuthSessionController.initialize."""

    async def test_starts_unresolved_and_loading(self, controller):
        """Test a new controller has no user and is loading."""
        assert controller.status is AuthStatus.UNRESOLVED
        assert controller.is_loading
        assert controller.user is None

    async def test_restores_stored_user(self, controller, store_session):
        """Test a valid stored session authenticates."""
        await store_session(stored_session(NOW_MS + 600_000))

        assert await controller.initialize() == ADA
        assert controller.status is AuthStatus.AUTHENTICATED
        assert controller.current_user == ADA
        assert not controller.is_loading

    async def test_without_session_is_anonymous(self, controller):
        """Test an empty store resolves to anonymous."""
        assert await controller.initialize() is None
        assert controller.status is AuthStatus.ANONYMOUS
        assert not controller.is_loading

    async def test_initialize_runs_once(self, controller, store_session):
        """Test later calls return the settled user without re-resolving."""
        await controller.initialize()
        await store_session(stored_session(NOW_MS + 600_000))
        assert await controller.initialize() is None


class TestLoginFlow:
    """Test begin_login and complete_login."""

    async def test_login_navigates_to_provider(self, controller, navigator, short_lived_store):
        """Test login sends the browser to the authorize URL."""
        url = await controller.login("/stats")

        assert navigator.visited == [url]
        assert url.startswith("https://auth.example.com/oauth2/authorize?")
        cached = decode_state(await short_lived_store.get(PKCE_STATE_KEY))
        assert cached == decode_state(_state_from(url))
        assert cached.redirect_path == "/stats"

    async def test_register_navigates_with_signup_hint(self, controller, navigator):
        """Test register requests the sign-up screen."""
        url = await controller.register()
        assert "screen_hint=signup" in navigator.visited[0]
        assert url == navigator.visited[0]

    async def test_complete_login(self, controller, navigator, token_endpoint):
        """Test the callback authenticates and returns the redirect path."""
        await controller.initialize()
        url = await controller.login("/stats")
        token_endpoint.stub_tokens(TOKEN_RESPONSE)
        seen = []
        controller.subscribe(seen.append)

        redirect = await controller.complete_login("the-code", _state_from(url))

        assert redirect == "/stats"
        assert controller.status is AuthStatus.AUTHENTICATED
        assert controller.user == ADA
        assert seen == [ADA]

    async def test_second_login_invalidates_first(self, controller, token_endpoint):
        """Test a callback from an abandoned attempt is rejected."""
        first = await controller.login()
        await controller.login()
        token_endpoint.stub_tokens(TOKEN_RESPONSE)

        with pytest.raises(StateMismatch):
            await controller.complete_login("the-code", _state_from(first))

        assert controller.user is None
        assert not token_endpoint.called

    async def test_failed_callback_keeps_status(self, controller, token_endpoint):
        """Test a rejected code leaves the controller anonymous."""
        await controller.initialize()
        url = await controller.login()
        token_endpoint.stub_error("invalid_grant")

        with pytest.raises(TokenExchangeFailed):
            await controller.complete_login("bad-code", _state_from(url))
        assert controller.status is AuthStatus.ANONYMOUS


class TestRefresh:
    """Test AuthSessionController.refresh."""

    async def test_refresh_keeps_authenticated(self, controller, store_session, token_endpoint):
        """Test a successful refresh updates the user."""
        await store_session(stored_session(NOW_MS + 600_000))
        await controller.initialize()
        token_endpoint.stub_tokens(REFRESH_RESPONSE)

        user = await controller.refresh()

        assert user.email == "ada.lovelace@example.com"
        assert controller.status is AuthStatus.AUTHENTICATED

    async def test_refresh_failure_signs_out(
        self, controller, store_session, token_endpoint, session_store
    ):
        """Test a failed refresh ends anonymous and clears storage."""
        await store_session(stored_session(NOW_MS + 600_000))
        await controller.initialize()
        token_endpoint.stub_error("invalid_grant")
        seen = []
        controller.subscribe(seen.append)

        assert await controller.refresh() is None
        assert controller.status is AuthStatus.ANONYMOUS
        assert await session_store.load_session() is None
        assert seen == [None]

    async def test_refresh_without_refresh_token_signs_out(self, controller, store_session):
        """Test a session that cannot be refreshed ends anonymous."""
        await store_session(stored_session(NOW_MS + 600_000, refresh_token=None))
        await controller.initialize()
        assert await controller.refresh() is None
        assert controller.status is AuthStatus.ANONYMOUS

    async def test_storage_failure_during_refresh_signs_out(
        self, controller, store_session, durable_store, navigator, monkeypatch
    ):
        """Test an unreadable store still settles the controller so logout works."""
        await store_session(stored_session(NOW_MS + 600_000))
        await controller.initialize()

        async def broken_get(key):
            raise OSError("session file unreadable")

        monkeypatch.setattr(durable_store, "get", broken_get)

        assert await controller.refresh() is None
        assert controller.status is AuthStatus.ANONYMOUS

        url = await controller.logout()
        assert navigator.visited == [url]

    async def test_refresh_requires_authenticated(self, controller):
        """Test refreshing an anonymous session is an invalid transition."""
        await controller.initialize()
        with pytest.raises(InvalidTransition):
            await controller.refresh()


class TestLogout:
    """Test AuthSessionController.logout."""

    async def test_logout(self, controller, store_session, session_store, navigator):
        """Test logout clears storage and visits the provider logout page."""
        await store_session(stored_session(NOW_MS + 600_000))
        await controller.initialize()
        seen = []
        unsubscribe = controller.subscribe(seen.append)

        url = await controller.logout()

        assert controller.status is AuthStatus.ANONYMOUS
        assert controller.user is None
        assert await session_store.load_session() is None
        assert navigator.visited == [url]
        assert url.startswith("https://auth.example.com/logout?")
        assert seen == [None]
        unsubscribe()
        unsubscribe()


class TestCreateController:
    """Test create_controller wiring."""

    async def test_wires_end_to_end(self, settings, token_endpoint):
        """Test a factory-built controller completes a login."""
        navigator = RecordingNavigator()
        durable = MemoryKeyValueStore()
        controller = create_controller(
            settings,
            navigator=navigator,
            durable_store=durable,
            clock=FakeClock(),
            current_origin="https://app.example.com",
        )
        await controller.initialize()
        url = await controller.login()
        token_endpoint.stub_tokens(TOKEN_RESPONSE)

        await controller.complete_login("the-code", _state_from(url))

        assert controller.user == ADA
        assert token_endpoint.last_form()["redirect_uri"] == "https://app.example.com/login"
        assert await durable.get("habify-cognito-session") is not None

    async def test_current_origin_overrides_stale_redirect(self, settings):
        """Test the redirect URI follows the serving origin."""
        navigator = RecordingNavigator()
        controller = create_controller(
            settings,
            navigator=navigator,
            current_origin="https://staging.example.com",
        )
        url = await controller.login()
        redirect_uri = parse_qs(urlsplit(url).query)["redirect_uri"][0]
        assert redirect_uri == "https://staging.example.com/login"

    async def test_incoming_state_alone_is_accepted(self, settings, token_endpoint):
        """Test a callback in a fresh process falls back to the returned state."""
        controller = create_controller(settings, navigator=RecordingNavigator())
        state = encode_state(RedirectState(code_verifier="v", redirect_path="/logs"))
        token_endpoint.stub_tokens(TOKEN_RESPONSE)

        assert await controller.complete_login("the-code", state) == "/logs"
