"""
Rider application database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.rider_enums import RiderStatus


class RiderApplication(Base):
    """
    Application to deliver parcels as a rider.

    Created PENDING; an admin moves it to APPROVED or REJECTED.
    """
    __tablename__ = "riders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    age = Column(Integer, nullable=True)
    region = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    national_id = Column(String(100), nullable=True)
    bike_registration = Column(String(100), nullable=True)

    status = Column(Enum(RiderStatus), default=RiderStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RiderApplication(id={self.id}, email='{self.email}', status='{self.status.value}')>"
