"""
Rider application status enumeration.
"""

import enum


class RiderStatus(str, enum.Enum):
    """
    Rider application status.

    Status flow:
        PENDING → APPROVED
        PENDING → REJECTED
    APPROVED and REJECTED are terminal.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
