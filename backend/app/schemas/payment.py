"""
Payment Pydantic schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List


class CheckoutSessionCreate(BaseModel):
    parcel_id: int = Field(..., description="Parcel to pay for")


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: Optional[str]


class SettlementResponse(BaseModel):
    """
    Outcome of a payment confirmation.

    Serialized in camelCase (`trackingId`, `transactionId`) for the web client.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: Optional[str] = None
    tracking_id: Optional[str] = None
    transaction_id: Optional[str] = None
    parcel_id: Optional[int] = None


class PaymentRecordResponse(BaseModel):
    id: int
    amount: float
    currency: str
    customer_email: str
    parcel_id: Optional[int]
    parcel_name: Optional[str]
    transaction_id: str
    payment_status: str
    tracking_id: str
    paid_at: datetime

    class Config:
        from_attributes = True


class PaymentHistoryResponse(BaseModel):
    payments: List[PaymentRecordResponse]
    total: int
