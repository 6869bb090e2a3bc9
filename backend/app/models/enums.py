"""
User roles enumeration.

Defines the role types for the parcel marketplace.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        USER: Sender booking parcels (default role)
        RIDER: Delivery rider, only after an approved rider application
        ADMIN: Platform administrator
    """
    USER = "user"
    RIDER = "rider"
    ADMIN = "admin"
