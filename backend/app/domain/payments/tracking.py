"""
Tracking ID generation for paid parcels.

Format: ``<PREFIX>-<YYYYMMDD>-<6 uppercase hex>``, e.g. ``DD-20261019-3FA9C1``.
24 random bits per day keep ids short; they are not a uniqueness key.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional

from backend.app.core.config import settings

RANDOM_BYTES = 3


def generate_tracking_id(prefix: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Generate a human-readable tracking id.

    Args:
        prefix: Id prefix, defaults to the configured tracking prefix
        now: Timestamp to derive the date part from (UTC now by default)
    """
    prefix = prefix or settings.tracking_prefix
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)

    date_part = now.strftime("%Y%m%d")
    random_part = secrets.token_hex(RANDOM_BYTES).upper()
    return f"{prefix}-{date_part}-{random_part}"
