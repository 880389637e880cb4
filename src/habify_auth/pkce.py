"""PKCE (RFC 7636) code verifier and S256 challenge generation."""

import base64
import hashlib

from .capabilities import RandomSource, system_random
from .errors import CryptoUnavailable
from .models import PkceArtifact

VERIFIER_BYTES = 32


def to_base64url(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def compute_code_challenge(code_verifier: str) -> str:
    """S256 challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return to_base64url(digest)


def create_pkce_artifact(random_source: RandomSource = system_random) -> PkceArtifact:
    """Create a fresh verifier/challenge pair for one login attempt.

    32 random bytes encode to a 43 character verifier, the minimum length
    RFC 7636 allows, using only unreserved URL characters.
    """
    try:
        random_bytes = random_source(VERIFIER_BYTES)
    except (NotImplementedError, OSError) as exc:
        raise CryptoUnavailable("No secure random source is available.") from exc

    code_verifier = to_base64url(random_bytes)
    return PkceArtifact(
        code_verifier=code_verifier,
        code_challenge=compute_code_challenge(code_verifier),
    )
