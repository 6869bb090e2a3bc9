"""
Payment API Endpoints.

Checkout creation, client-triggered payment confirmation and payment history.
Confirmation is safe to call repeatedly (e.g. from a reloaded success page).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_identity, get_settlement_coordinator
from backend.app.core.exceptions import InsufficientPermissionsError
from backend.app.core.guards import has_role
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.domain.payments.settlement_service import SettlementCoordinator, SettlementOutcome
from backend.app.models.enums import UserRole
from backend.app.models.payment import PaymentRecord
from backend.app.schemas.payment import (
    CheckoutSessionCreate, CheckoutSessionResponse, PaymentHistoryResponse,
    PaymentRecordResponse, SettlementResponse
)
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/payments", tags=["Payments"])

OUTCOME_MESSAGES = {
    SettlementOutcome.SETTLED: "Payment settled",
    SettlementOutcome.ALREADY_SETTLED: "Already exists",
    SettlementOutcome.NOT_PAID: "Payment not completed",
}


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    checkout: CheckoutSessionCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    coordinator: SettlementCoordinator = Depends(get_settlement_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Open a hosted checkout for one of the caller's unpaid parcels.

    Returns the provider URL the client should redirect to.
    """
    session = await coordinator.open_checkout(checkout.parcel_id, identity.email)

    await log_event(
        db=db,
        action=AuditAction.CHECKOUT_STARTED,
        actor_email=identity.email,
        metadata={"parcel_id": checkout.parcel_id, "session_id": session.id}
    )

    return CheckoutSessionResponse(session_id=session.id, url=session.url)


@router.patch("/payment-success", response_model=SettlementResponse)
async def confirm_payment(
    request: Request,
    session_id: str = Query(..., min_length=1, description="Checkout session ID"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    coordinator: SettlementCoordinator = Depends(get_settlement_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a checkout session and settle it exactly once.

    Every defined outcome answers 200:
    - settled now: `success=true` with the new tracking id
    - settled before: `success=true`, `message="Already exists"`, same tracking id
    - not paid: `success=false`, nothing written
    """
    result = await coordinator.settle(session_id)

    if result.outcome == SettlementOutcome.SETTLED:
        await log_event(
            db=db,
            action=AuditAction.PAYMENT_SETTLED,
            actor_email=identity.email,
            target_email=result.payment.customer_email,
            metadata={
                "transaction_id": result.transaction_id,
                "tracking_id": result.tracking_id,
                "parcel_id": result.parcel.id
            },
            ip_address=request.client.host if request.client else None
        )

    return SettlementResponse(
        success=result.success,
        message=OUTCOME_MESSAGES[result.outcome],
        tracking_id=result.tracking_id,
        transaction_id=result.transaction_id,
        parcel_id=result.payment.parcel_id if result.payment else None
    )


@router.get("", response_model=PaymentHistoryResponse)
async def list_payments(
    email: Optional[str] = Query(None, description="Customer email (admins only for other customers)"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Payment history, newest first."""
    email = email.lower() if email else identity.email
    if email != identity.email and not await has_role(db, identity, UserRole.ADMIN):
        raise InsufficientPermissionsError("You can only view your own payments")

    condition = PaymentRecord.customer_email == email
    total = (await db.execute(select(func.count(PaymentRecord.id)).where(condition))).scalar()
    result = await db.execute(
        select(PaymentRecord).where(condition).order_by(PaymentRecord.paid_at.desc(), PaymentRecord.id.desc())
    )

    return PaymentHistoryResponse(
        payments=[PaymentRecordResponse.model_validate(p) for p in result.scalars().all()],
        total=total
    )
