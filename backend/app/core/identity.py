"""
Identity verification against the identity provider.

Turns a raw ``Authorization`` header into a `VerifiedIdentity`. The email
carried by that value is the only caller identity the rest of a request may
trust.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from jose import JWTError

from backend.app.core.exceptions import AuthenticationError, TokenRevokedError
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class VerifiedIdentity:
    """Caller identity extracted from a validated bearer token."""
    email: str
    token: str = field(repr=False)
    claims: Dict[str, Any] = field(default_factory=dict, repr=False)


class TokenRejectedError(Exception):
    """Raised by an identity provider that refuses a token."""


@runtime_checkable
class IdentityProvider(Protocol):
    """Verifies bearer tokens and returns their decoded claims."""

    async def verify_token(self, token: str) -> Dict[str, Any]: ...


class JWTIdentityProvider:
    """Identity provider backed by signed JWTs (signature, expiry, issuer, audience)."""

    async def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            return decode_access_token(token)
        except JWTError as e:
            raise TokenRejectedError(str(e)) from e


def extract_bearer_token(raw_header: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthenticationError: If the header is absent or not a bearer credential
    """
    if not raw_header:
        raise AuthenticationError("Missing authorization header")

    scheme, _, token = raw_header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token:
        raise AuthenticationError("Authorization header must use the Bearer scheme")

    return token


async def verify(raw_header: Optional[str], provider: IdentityProvider) -> VerifiedIdentity:
    """
    Verify a raw authorization header.

    Every call performs a fresh verification; nothing is cached.

    Args:
        raw_header: Value of the Authorization header (may be None)
        provider: Identity provider used to validate the token

    Returns:
        VerifiedIdentity carrying the token's email claim

    Raises:
        AuthenticationError: Missing/malformed header, rejected token or no email claim
        TokenRevokedError: Token was revoked through logout
    """
    token = extract_bearer_token(raw_header)

    try:
        claims = await provider.verify_token(token)
    except TokenRejectedError as e:
        logger.info("Identity provider rejected token: %s", e)
        raise AuthenticationError("Could not validate credentials") from e

    email = claims.get("email")
    if not email or not isinstance(email, str):
        raise AuthenticationError("Token has no email claim")

    if await is_token_revoked(token):
        raise TokenRevokedError()

    return VerifiedIdentity(email=email.lower(), token=token, claims=claims)
