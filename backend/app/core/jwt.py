"""
JWT token utilities for the identity provider.

Tokens are issued by the identity provider and only verified here;
`create_access_token` mints tokens with the same key for local development
and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt
from backend.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (should include: email)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example payload:
        {
            "sub": "uid-123",
            "email": "sender@example.com",
            "exp": 1234567890
        }
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    if settings.token_issuer and "iss" not in to_encode:
        to_encode["iss"] = settings.token_issuer
    if settings.token_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.token_audience

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Signature, expiry and, when configured, issuer and audience are checked.

    Raises:
        JWTError: If the token fails any check
    """
    options = {"verify_aud": settings.token_audience is not None}
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.algorithm],
        audience=settings.token_audience,
        issuer=settings.token_issuer,
        options=options,
    )

