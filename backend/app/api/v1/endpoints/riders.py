"""
Rider Application API Endpoints.

Anyone signed in can apply; only admins can list and decide applications.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_identity, get_rider_service
from backend.app.core.guards import require_admin
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.domain.riders.rider_service import RiderLifecycleService
from backend.app.models.rider import RiderApplication
from backend.app.models.rider_enums import RiderStatus
from backend.app.schemas.rider import (
    RiderApplicationCreate, RiderListResponse, RiderResponse, RiderStatusUpdate, RiderTransitionResponse
)
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/riders", tags=["Riders"])

DECISION_ACTIONS = {
    RiderStatus.APPROVED: AuditAction.RIDER_APPROVED,
    RiderStatus.REJECTED: AuditAction.RIDER_REJECTED,
}


@router.post("", response_model=RiderResponse, status_code=status.HTTP_201_CREATED)
async def apply_as_rider(
    application: RiderApplicationCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    riders: RiderLifecycleService = Depends(get_rider_service),
    db: AsyncSession = Depends(get_db)
):
    """Submit a rider application for the verified caller (always PENDING)."""
    rider = await riders.submit_application(identity.email, **application.model_dump())

    await log_event(
        db=db,
        action=AuditAction.RIDER_APPLIED,
        actor_email=identity.email,
        metadata={"rider_id": rider.id}
    )

    return RiderResponse.model_validate(rider)


@router.get("", response_model=RiderListResponse)
async def list_riders(
    rider_status: Optional[RiderStatus] = Query(None, alias="status"),
    identity: VerifiedIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List rider applications, newest first (Admin only)."""
    conditions = []
    if rider_status:
        conditions.append(RiderApplication.status == rider_status)

    total = (await db.execute(select(func.count(RiderApplication.id)).where(*conditions))).scalar()
    result = await db.execute(
        select(RiderApplication).where(*conditions)
        .order_by(RiderApplication.created_at.desc(), RiderApplication.id.desc())
    )

    return RiderListResponse(
        riders=[RiderResponse.model_validate(r) for r in result.scalars().all()],
        total=total
    )


@router.patch("/{rider_id}/status", response_model=RiderTransitionResponse)
async def update_rider_status(
    request: Request,
    update: RiderStatusUpdate,
    rider_id: int = Path(..., description="Rider application ID"),
    identity: VerifiedIdentity = Depends(require_admin),
    riders: RiderLifecycleService = Depends(get_rider_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve or reject a PENDING rider application (Admin only).

    Approval promotes the applicant's user role to RIDER in the same
    transaction.
    """
    result = await riders.transition(rider_id, update.status, update.email)

    await log_event(
        db=db,
        action=DECISION_ACTIONS[result.rider.status],
        actor_email=identity.email,
        target_email=result.rider.email,
        metadata={
            "rider_id": rider_id,
            "from": result.previous_status.value,
            "role_promoted": result.role_changed
        },
        ip_address=request.client.host if request.client else None
    )

    return RiderTransitionResponse(
        rider=RiderResponse.model_validate(result.rider),
        previous_status=result.previous_status,
        role_promoted=result.role_changed
    )
