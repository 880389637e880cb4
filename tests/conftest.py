"""Pytest configuration and shared fixtures."""

import json
from functools import partial

import pytest
import respx

from habify_auth.authorize import AuthorizeUrlBuilder
from habify_auth.config import AuthSettings, resolve_provider_config
from habify_auth.controller import AuthSessionController
from habify_auth.resolver import SessionResolver
from habify_auth.session_store import SESSION_KEY, SessionStore
from habify_auth.storage import MemoryKeyValueStore
from habify_auth.token_client import TokenExchangeClient
from tests.fixtures.token_fixtures import CLIENT_ID, DOMAIN, REDIRECT_URI
from tests.helpers import FakeClock, RecordingNavigator
from tests.stubs.token_endpoint_stub import TokenEndpointStubber


@pytest.fixture
def settings():
    """Provide provider settings for testing."""
    return AuthSettings(
        _env_file=None,
        cognito_domain=f"{DOMAIN}/",
        cognito_user_pool_client_id=CLIENT_ID,
        cognito_redirect_uri=REDIRECT_URI,
        cognito_debug=False,
        habify_session_backend="memory",
    )


@pytest.fixture
def config_source(settings):
    return partial(resolve_provider_config, settings, None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def short_lived_store():
    return MemoryKeyValueStore()


@pytest.fixture
def durable_store():
    return MemoryKeyValueStore()


@pytest.fixture
def session_store(durable_store):
    return SessionStore(durable_store)


@pytest.fixture
def store_session(durable_store):
    """Write a raw session record straight into durable storage."""

    async def _store(record: dict) -> None:
        await durable_store.set(SESSION_KEY, json.dumps(record))

    return _store


@pytest.fixture
def urls(config_source, short_lived_store):
    return AuthorizeUrlBuilder(config_source, short_lived_store)


@pytest.fixture
def token_client(config_source, session_store, short_lived_store, clock):
    return TokenExchangeClient(config_source, session_store, short_lived_store, clock=clock)


@pytest.fixture
def resolver(session_store, token_client, clock):
    return SessionResolver(session_store, token_client, clock=clock)


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def controller(urls, token_client, session_store, resolver, navigator, config_source):
    return AuthSessionController(
        urls,
        token_client,
        session_store,
        resolver,
        navigator,
        config_source=config_source,
    )


@pytest.fixture
def respx_mock():
    """Provide a respx mock router for the identity provider."""
    with respx.mock(base_url=DOMAIN, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def token_endpoint(respx_mock):
    """Provide a token endpoint stubber."""
    return TokenEndpointStubber(respx_mock)
