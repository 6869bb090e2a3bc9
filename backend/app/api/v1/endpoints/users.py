"""
User API Endpoints.

Registration is idempotent per verified email. Role changes are admin-only
and never accept a role from the caller's own token or body.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_identity, get_rider_service
from backend.app.core.exceptions import BusinessValidationError, ResourceNotFoundError
from backend.app.core.guards import require_admin
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.domain.riders.rider_service import RiderLifecycleService
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.schemas.user import (
    RegistrationResponse, RoleUpdate, UserListResponse, UserRegister, UserResponse, UserRoleResponse
)
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/users", tags=["Users"])


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


@router.post("", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    response: Response,
    user_data: Optional[UserRegister] = None,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Register the verified caller.

    A second registration for the same email is not an error: it returns
    200 with `inserted=false` and refreshes `last_login_at`.
    New users always start with role USER.
    """
    user_data = user_data or UserRegister()
    now = datetime.now(timezone.utc)
    existing = await _get_user_by_email(db, identity.email)

    if existing is None:
        new_user = User(
            email=identity.email,
            display_name=user_data.display_name,
            photo_url=user_data.photo_url,
            role=UserRole.USER,
            last_login_at=now
        )
        db.add(new_user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await db.rollback()
            existing = await _get_user_by_email(db, identity.email)
        else:
            await db.refresh(new_user)
            await log_event(
                db=db,
                action=AuditAction.USER_REGISTERED,
                actor_email=identity.email,
                target_email=identity.email
            )
            return RegistrationResponse(
                inserted=True,
                message="User created",
                user=UserResponse.model_validate(new_user)
            )

    existing.last_login_at = now
    await db.commit()
    await db.refresh(existing)

    response.status_code = status.HTTP_200_OK
    return RegistrationResponse(
        inserted=False,
        message="User already exists",
        user=UserResponse.model_validate(existing)
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get the verified caller's stored profile."""
    user = await _get_user_by_email(db, identity.email)
    if not user:
        raise ResourceNotFoundError("User", identity.email)
    return UserResponse.model_validate(user)


@router.get("/{email}/role", response_model=UserRoleResponse)
async def get_user_role(
    email: str = Path(..., description="User email"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a user's stored role.

    Unknown emails report the default USER role.
    """
    email = email.lower()
    user = await _get_user_by_email(db, email)
    return UserRoleResponse(email=email, role=user.role if user else UserRole.USER)


@router.get("", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None, description="Filter by email or display name"),
    limit: int = Query(50, ge=1, le=200),
    identity: VerifiedIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List users (Admin only)."""
    query = select(User)
    count_query = select(func.count(User.id))

    if search:
        pattern = f"%{search}%"
        condition = or_(User.email.ilike(pattern), User.display_name.ilike(pattern))
        query = query.where(condition)
        count_query = count_query.where(condition)

    total = (await db.execute(count_query)).scalar()
    result = await db.execute(query.order_by(User.created_at.desc(), User.id.desc()).limit(limit))

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total
    )


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    request: Request,
    role_update: RoleUpdate,
    user_id: int = Path(..., description="User ID"),
    identity: VerifiedIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    riders: RiderLifecycleService = Depends(get_rider_service)
):
    """
    Change a user's role (Admin only).

    The RIDER role can only be granted to users with an approved rider
    application.
    """
    user = await db.get(User, user_id)
    if not user:
        raise ResourceNotFoundError("User", user_id)

    if role_update.role == UserRole.RIDER and not await riders.has_approved_application(user.email):
        raise BusinessValidationError(
            "Rider role requires an approved rider application",
            details={"email": user.email}
        )

    previous_role = user.role
    user.role = role_update.role
    await db.commit()
    await db.refresh(user)

    await log_event(
        db=db,
        action=AuditAction.ROLE_CHANGED,
        actor_email=identity.email,
        target_email=user.email,
        metadata={"from": previous_role.value, "to": user.role.value},
        ip_address=request.client.host if request.client else None
    )

    return UserResponse.model_validate(user)
