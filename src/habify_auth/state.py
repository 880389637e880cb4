"""Encoding of the redirect state passed through the identity provider.

The token is plain base64 of a JSON object. It is not signed: the only
protection against forged callbacks is comparing its code verifier with the
copy cached in short-lived storage when the login started.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass

from pydantic import ValidationError

from .models import RedirectState

PKCE_STATE_KEY = "habify-cognito-pkce-state"


@dataclass(frozen=True)
class DecodeFailure:
    """A state token that could not be decoded and must not be trusted."""

    reason: str


def encode_state(state: RedirectState) -> str:
    payload = state.model_dump(by_alias=True, exclude_none=True)
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_state(token: str) -> RedirectState | DecodeFailure:
    """Decode a state token; never raises."""
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, AttributeError) as exc:
        return DecodeFailure(f"invalid base64: {exc}")

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        return DecodeFailure(f"invalid JSON: {exc}")

    if not isinstance(payload, dict):
        return DecodeFailure("state is not an object")

    try:
        return RedirectState.model_validate(payload)
    except ValidationError as exc:
        return DecodeFailure(f"invalid structure: {exc.error_count()} error(s)")
