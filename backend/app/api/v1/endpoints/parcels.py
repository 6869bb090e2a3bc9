"""
Parcel API Endpoints.

Senders book and manage their own parcels; admins can see and delete any.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_identity
from backend.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from backend.app.core.guards import has_role
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.models.parcel import Parcel
from backend.app.models.parcel_enums import PaymentStatus
from backend.app.schemas.parcel import ParcelCreate, ParcelDeleteResponse, ParcelListResponse, ParcelResponse
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/parcels", tags=["Parcels"])


async def _get_owned_parcel(db: AsyncSession, parcel_id: int, identity: VerifiedIdentity) -> Parcel:
    """Load a parcel the caller sent (or any parcel for admins)."""
    parcel = await db.get(Parcel, parcel_id)
    if not parcel:
        raise ResourceNotFoundError("Parcel", parcel_id)

    if parcel.sender_email != identity.email and not await has_role(db, identity, UserRole.ADMIN):
        raise InsufficientPermissionsError(
            "Access denied. You do not have permission to access this parcel."
        )
    return parcel


@router.get("", response_model=ParcelListResponse)
async def list_parcels(
    email: Optional[str] = Query(None, description="Sender email (admins only for other senders)"),
    payment_status: Optional[PaymentStatus] = Query(None),
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    List parcels, newest first.

    Non-admins only ever see their own parcels; asking for another sender's
    email is rejected rather than silently rewritten.
    """
    is_admin = await has_role(db, identity, UserRole.ADMIN)

    if email:
        email = email.lower()
        if email != identity.email and not is_admin:
            raise InsufficientPermissionsError("You can only list your own parcels")
    elif not is_admin:
        email = identity.email

    conditions = []
    if email:
        conditions.append(Parcel.sender_email == email)
    if payment_status:
        conditions.append(Parcel.payment_status == payment_status)

    total = (await db.execute(select(func.count(Parcel.id)).where(*conditions))).scalar()
    result = await db.execute(
        select(Parcel).where(*conditions).order_by(Parcel.created_at.desc(), Parcel.id.desc())
    )

    return ParcelListResponse(
        parcels=[ParcelResponse.model_validate(p) for p in result.scalars().all()],
        total=total
    )


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get a parcel the caller sent (admins: any parcel)."""
    parcel = await _get_owned_parcel(db, parcel_id, identity)
    return ParcelResponse.model_validate(parcel)


@router.post("", response_model=ParcelResponse, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a parcel for the verified sender.

    New parcels are always UNPAID with no tracking id.
    """
    new_parcel = Parcel(
        sender_email=identity.email,
        payment_status=PaymentStatus.UNPAID,
        tracking_id=None,
        **parcel_data.model_dump()
    )

    db.add(new_parcel)
    await db.commit()
    await db.refresh(new_parcel)

    await log_event(
        db=db,
        action=AuditAction.PARCEL_CREATED,
        actor_email=identity.email,
        metadata={"parcel_id": new_parcel.id, "cost": new_parcel.cost}
    )

    return ParcelResponse.model_validate(new_parcel)


@router.delete("/{parcel_id}", response_model=ParcelDeleteResponse)
async def delete_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a parcel, paid or unpaid.

    Payment records are kept; their parcel reference is cleared.
    """
    parcel = await _get_owned_parcel(db, parcel_id, identity)

    await db.delete(parcel)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.PARCEL_DELETED,
        actor_email=identity.email,
        metadata={"parcel_id": parcel_id}
    )

    return ParcelDeleteResponse(deleted=True, parcel_id=parcel_id)
