"""
Payment record database model.

One row per settled provider transaction. The unique index on
`transaction_id` is what keeps settlement idempotent under concurrent
confirmations.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class PaymentRecord(Base):
    """Settled checkout for a parcel."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(10), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)

    parcel_id = Column(Integer, ForeignKey('parcels.id', ondelete="SET NULL"), nullable=True, index=True)
    parcel_name = Column(String(255), nullable=True)

    transaction_id = Column(String(255), unique=True, nullable=False, index=True)
    payment_status = Column(String(50), nullable=False)
    tracking_id = Column(String(32), nullable=False)

    paid_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentRecord(id={self.id}, transaction_id='{self.transaction_id}', parcel_id={self.parcel_id})>"
