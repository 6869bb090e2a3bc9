"""
Parcel database model.

A parcel is booked by a sender and paid through a checkout session.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.parcel_enums import PaymentStatus


class Parcel(Base):
    """
    Parcel model.

    `tracking_id` stays empty until the parcel is paid; it is assigned in the
    same transaction that records the payment.
    """
    __tablename__ = "parcels"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Sender
    sender_email = Column(String(255), nullable=False, index=True)
    sender_name = Column(String(255), nullable=True)

    # Parcel details
    name = Column(String(255), nullable=False)
    parcel_type = Column(String(50), nullable=True)
    weight_kg = Column(Float, nullable=True)
    cost = Column(Float, nullable=False)

    # Route
    sender_region = Column(String(100), nullable=True)
    sender_district = Column(String(100), nullable=True)
    sender_address = Column(String(500), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_phone = Column(String(50), nullable=True)
    receiver_region = Column(String(100), nullable=True)
    receiver_district = Column(String(100), nullable=True)
    receiver_address = Column(String(500), nullable=True)

    # Payment
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False, index=True)
    tracking_id = Column(String(32), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Parcel(id={self.id}, name='{self.name}', payment_status='{self.payment_status.value}')>"
