"""
Parcel Pydantic schemas.

Defines request and response models for parcel booking.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.parcel_enums import PaymentStatus


class ParcelCreate(BaseModel):
    """
    Schema for booking a parcel.

    Sender email, payment status and tracking id are set by the server.
    """
    name: str = Field(..., min_length=1, max_length=255, description="Parcel name")
    parcel_type: Optional[str] = Field(None, max_length=50, description="document / non-document")
    weight_kg: Optional[float] = Field(None, gt=0, description="Weight in kilograms")
    cost: float = Field(..., gt=0, description="Delivery cost")
    sender_name: Optional[str] = Field(None, max_length=255)
    sender_region: Optional[str] = Field(None, max_length=100)
    sender_district: Optional[str] = Field(None, max_length=100)
    sender_address: Optional[str] = Field(None, max_length=500)
    receiver_name: Optional[str] = Field(None, max_length=255)
    receiver_phone: Optional[str] = Field(None, max_length=50)
    receiver_region: Optional[str] = Field(None, max_length=100)
    receiver_district: Optional[str] = Field(None, max_length=100)
    receiver_address: Optional[str] = Field(None, max_length=500)


class ParcelResponse(BaseModel):
    """Schema for parcel response."""
    id: int
    sender_email: str
    sender_name: Optional[str]
    name: str
    parcel_type: Optional[str]
    weight_kg: Optional[float]
    cost: float
    sender_region: Optional[str]
    sender_district: Optional[str]
    sender_address: Optional[str]
    receiver_name: Optional[str]
    receiver_phone: Optional[str]
    receiver_region: Optional[str]
    receiver_district: Optional[str]
    receiver_address: Optional[str]
    payment_status: PaymentStatus
    tracking_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ParcelListResponse(BaseModel):
    parcels: List[ParcelResponse]
    total: int


class ParcelDeleteResponse(BaseModel):
    deleted: bool
    parcel_id: int
