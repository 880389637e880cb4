"""Tests for the redirect state codec."""

import base64
import json

import pytest

from habify_auth.models import RedirectState
from habify_auth.state import DecodeFailure, decode_state, encode_state


class TestEncodeState:
    """Test encode_state function."""

    def test_encodes_camel_case_json(self):
        """Test the token is base64 of the camelCase JSON object."""
        token = encode_state(RedirectState(code_verifier="v1", redirect_path="/stats"))
        payload = json.loads(base64.b64decode(token))
        assert payload == {"codeVerifier": "v1", "redirectPath": "/stats"}

    def test_omits_absent_redirect_path(self):
        """Test redirectPath is left out when not given."""
        token = encode_state(RedirectState(code_verifier="v1"))
        assert json.loads(base64.b64decode(token)) == {"codeVerifier": "v1"}


class TestDecodeState:
    """Test decode_state function."""

    @pytest.mark.parametrize(
        "state",
        [
            RedirectState(code_verifier="abc"),
            RedirectState(code_verifier="abc", redirect_path="/activities?tab=week"),
            RedirectState(code_verifier="x" * 128, redirect_path="/tägebuch"),
        ],
    )
    def test_round_trip(self, state):
        """Test decode_state(encode_state(s)) == s."""
        assert decode_state(encode_state(state)) == state

    def test_accepts_legacy_token_without_redirect_path(self):
        """Test tokens written with a null redirectPath decode."""
        token = base64.b64encode(b'{"codeVerifier":"v","redirectPath":null}').decode()
        assert decode_state(token) == RedirectState(code_verifier="v")

    @pytest.mark.parametrize(
        "token",
        [
            "not base64!",
            base64.b64encode(b"\xff\xfe").decode(),
            base64.b64encode(b"{not json").decode(),
            base64.b64encode(b'["codeVerifier"]').decode(),
            base64.b64encode(b'{"redirectPath":"/x"}').decode(),
            base64.b64encode(b'{"codeVerifier":""}').decode(),
            base64.b64encode(b'{"codeVerifier":42}').decode(),
            "",
        ],
    )
    def test_malformed_tokens_yield_decode_failure(self, token):
        """Test malformed input returns DecodeFailure instead of raising."""
        result = decode_state(token)
        assert isinstance(result, DecodeFailure)
        assert result.reason
