"""
Rider application Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.rider_enums import RiderStatus


class RiderApplicationCreate(BaseModel):
    """
    Schema for applying as a rider.

    The applicant email is taken from the verified token and the status is
    always PENDING; both are ignored if sent.
    """
    name: str = Field(..., min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=18, le=100)
    region: Optional[str] = Field(None, max_length=100)
    district: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    national_id: Optional[str] = Field(None, max_length=100)
    bike_registration: Optional[str] = Field(None, max_length=100)


class RiderStatusUpdate(BaseModel):
    status: RiderStatus
    email: Optional[str] = Field(None, description="Applicant email (must match the application)")


class RiderResponse(BaseModel):
    id: int
    name: str
    email: str
    age: Optional[int]
    region: Optional[str]
    district: Optional[str]
    phone: Optional[str]
    national_id: Optional[str]
    bike_registration: Optional[str]
    status: RiderStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RiderListResponse(BaseModel):
    riders: List[RiderResponse]
    total: int


class RiderTransitionResponse(BaseModel):
    rider: RiderResponse
    previous_status: RiderStatus
    role_promoted: bool
