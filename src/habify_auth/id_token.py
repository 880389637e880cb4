"""Identity extraction from id tokens.

The payload is decoded without verifying the signature. The token was obtained
over TLS straight from the provider's token endpoint, so this is an identity
and display convenience, not a security check.
"""

import base64
import binascii
import json
from typing import Any

from .models import AuthUser

UNKNOWN = "unknown"


def decode_jwt_payload(token: str) -> dict[str, Any]:
    """Return the claims of a JWT.

    Raises:
        ValueError: If the token is not a JWT with a JSON object payload
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise ValueError("Token is not a JWT.")

    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        decoded = base64.urlsafe_b64decode(segment.encode("ascii"))
        payload = json.loads(decoded.decode("utf-8"))
    except (binascii.Error, UnicodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Token payload could not be decoded: {exc}") from exc

    if not isinstance(payload, dict):
        raise ValueError("Token payload is not a JSON object.")
    return payload


def map_id_token_to_user(id_token: str, fallback_email: str | None = None) -> AuthUser:
    """Build the user from the ``sub`` and ``email`` claims."""
    payload = decode_jwt_payload(id_token)
    subject = payload.get("sub")
    email = payload.get("email")
    return AuthUser(
        id=str(subject) if subject is not None else UNKNOWN,
        email=str(email) if email is not None else (fallback_email or UNKNOWN),
    )
