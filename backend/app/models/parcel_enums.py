"""
Parcel payment status enumeration.
"""

import enum


class PaymentStatus(str, enum.Enum):
    """
    Parcel payment status.

    Status flow:
        UNPAID → PAID (once, through payment settlement)
    """
    UNPAID = "unpaid"
    PAID = "paid"
