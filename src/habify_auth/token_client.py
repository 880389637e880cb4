"""Token endpoint client for the authorization_code and refresh_token grants."""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from .capabilities import Clock, system_clock
from .config import ProviderConfig, ProviderConfigSource
from .debug_log import DISABLED, AuthDebugLogger, describe_session, mask_token
from .errors import InvalidTokenResponse, MissingPkceState, StateMismatch, TokenExchangeFailed
from .id_token import map_id_token_to_user
from .models import ExchangeResult, RedirectState, Session, TokenResponse, TokenResult
from .session_store import SessionStore
from .state import PKCE_STATE_KEY, DecodeFailure, decode_state
from .storage import KeyValueStore

logger = structlog.get_logger()

DEFAULT_FAILURE_MESSAGE = "Tokens could not be retrieved from the identity provider."


class TokenExchangeClient:
    """Exchange authorization codes and refresh tokens for sessions."""

    def __init__(
        self,
        config_source: ProviderConfigSource,
        session_store: SessionStore,
        short_lived_store: KeyValueStore,
        *,
        clock: Clock = system_clock,
        debug: AuthDebugLogger = DISABLED,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config_source = config_source
        self._session_store = session_store
        self._short_lived_store = short_lived_store
        self._clock = clock
        self._debug = debug
        self._http_client = http_client

    async def exchange_authorization_code(
        self, code: str, state_param: str | None = None
    ) -> ExchangeResult:
        """Complete a login callback.

        The cached state is authoritative. When the provider also returned a
        state, both must carry the same verifier; this is checked before any
        network traffic.

        Raises:
            StateMismatch: Cached and returned verifiers differ
            MissingPkceState: No decodable state is available
            TokenExchangeFailed: The token endpoint rejected the code
            InvalidTokenResponse: The response lacks usable tokens
        """
        stored_state = self._decode(await self._short_lived_store.get(PKCE_STATE_KEY), "cached")
        incoming_state = self._decode(state_param, "incoming")

        if (
            stored_state is not None
            and incoming_state is not None
            and incoming_state.code_verifier != stored_state.code_verifier
        ):
            raise StateMismatch()

        state = stored_state or incoming_state
        if state is None:
            raise MissingPkceState()

        config = self._config_source()
        result = await self._request_tokens(
            config,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": config.client_id,
                "redirect_uri": config.redirect_uri,
                "code_verifier": state.code_verifier,
            },
        )

        await self._session_store.persist_session(result.session)
        self._debug.event(
            "authorization_code_redeemed",
            redirect_path=state.redirect_path or "none",
            session=describe_session(result.session),
            user=result.user.model_dump(),
        )
        await self._short_lived_store.delete(PKCE_STATE_KEY)

        return ExchangeResult(
            session=result.session,
            user=result.user,
            redirect_path=state.redirect_path,
        )

    async def refresh_session(self, refresh_token: str) -> TokenResult:
        """Obtain and persist a new session from a refresh token."""
        config = self._config_source()
        result = await self._request_tokens(
            config,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": config.client_id,
            },
        )
        self._debug.event(
            "refresh_token_redeemed",
            session=describe_session(result.session),
            user=result.user.model_dump(),
        )
        await self._session_store.persist_session(result.session)
        return result

    @staticmethod
    def _decode(value: str | None, source: str) -> RedirectState | None:
        if not value:
            return None
        decoded = decode_state(value)
        if isinstance(decoded, DecodeFailure):
            logger.warning("redirect_state_undecodable", source=source, reason=decoded.reason)
            return None
        return decoded

    async def _post(self, url: str, body: dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, data=body)
        async with httpx.AsyncClient() as client:
            return await client.post(url, data=body)

    async def _request_tokens(self, config: ProviderConfig, body: dict[str, str]) -> TokenResult:
        self._debug.event(
            "token_request_sent",
            token_endpoint=config.token_endpoint,
            grant_type=body["grant_type"],
            redirect_uri=body.get("redirect_uri"),
            code=mask_token(body.get("code")),
            code_verifier=mask_token(body.get("code_verifier")),
            refresh_token=mask_token(body.get("refresh_token")),
        )

        try:
            response = await self._post(config.token_endpoint, body)
        except httpx.HTTPError as exc:
            raise TokenExchangeFailed(
                f"Network error while contacting the identity provider: {exc}"
            ) from exc

        if not response.is_success:
            raise TokenExchangeFailed(
                response.text or DEFAULT_FAILURE_MESSAGE,
                status_code=response.status_code,
            )

        try:
            token_data = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise InvalidTokenResponse() from exc

        if not token_data.id_token or not token_data.access_token:
            raise InvalidTokenResponse()

        try:
            user = map_id_token_to_user(token_data.id_token)
        except ValueError as exc:
            raise InvalidTokenResponse(
                "The identity provider returned an unreadable id token."
            ) from exc

        session = Session(
            id_token=token_data.id_token,
            access_token=token_data.access_token,
            refresh_token=token_data.refresh_token or None,
            expires_at=self._clock() + token_data.expires_in * 1000,
        )
        return TokenResult(session=session, user=user)
