"""
Token Revocation System using Redis.

Implements token blacklisting so a logged-out bearer token stops verifying
before it expires.
"""

import hashlib
import logging
import math
import time
from typing import Optional

from backend.app.core.config import settings
import backend.app.core.redis_client as redis_client_module

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


def _token_key(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return f"{TOKEN_BLACKLIST_PREFIX}{digest}"


def _remaining_lifetime(expires_at: Optional[int]) -> int:
    # Without an exp claim fall back to the configured token lifetime
    if expires_at is None:
        return settings.access_token_expire_minutes * 60
    return max(math.ceil(expires_at - time.time()), 1)


async def revoke_token(token: str, email: str, expires_at: Optional[int] = None) -> bool:
    """
    Revoke a specific token by adding its hash to the blacklist.

    Args:
        token: The bearer token to revoke
        email: Verified email of the token owner (stored for audit purposes)
        expires_at: The token's `exp` claim (epoch seconds); the entry lives until then

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        ttl_seconds = _remaining_lifetime(expires_at)
        await redis_client_module.redis_client.set(_token_key(token), email, ex=ttl_seconds)
        return True
    except Exception as e:
        logger.error("Error revoking token for %s: %s", email, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable.
    """
    try:
        exists = await redis_client_module.redis_client.exists(_token_key(token))
        return exists > 0
    except Exception as e:
        logger.warning("Error checking token revocation, allowing request: %s", e)
        return False
