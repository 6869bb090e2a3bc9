"""
Role Authority: role-based access control for verified callers.

Decisions are made from the role stored for the verified email, never from
token claims or request bodies.
"""

import enum
import logging

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_identity
from backend.app.core.exceptions import InsufficientPermissionsError
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.models.user import User

logger = logging.getLogger(__name__)


class AccessDecision(str, enum.Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"


async def authorize(
    db: AsyncSession,
    identity: VerifiedIdentity,
    required_role: UserRole
) -> AccessDecision:
    """
    Decide whether a verified caller holds `required_role`.

    Args:
        db: Database session
        identity: Output of the identity verifier for this request
        required_role: Role the route demands

    Returns:
        ALLOWED if the stored user exists and has exactly that role,
        FORBIDDEN otherwise
    """
    if not isinstance(identity, VerifiedIdentity):
        raise TypeError("authorize() requires a VerifiedIdentity")

    result = await db.execute(select(User.role).where(User.email == identity.email))
    stored_role = result.scalar_one_or_none()

    if stored_role is None or stored_role != required_role:
        return AccessDecision.FORBIDDEN
    return AccessDecision.ALLOWED


async def has_role(db: AsyncSession, identity: VerifiedIdentity, role: UserRole) -> bool:
    return await authorize(db, identity, role) == AccessDecision.ALLOWED


def require_role(required_role: UserRole):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin/audit-logs")
        async def list_logs(identity: VerifiedIdentity = Depends(require_role(UserRole.ADMIN))):
            ...

    Args:
        required_role: Role the caller must hold

    Returns:
        FastAPI dependency returning the caller's VerifiedIdentity

    Raises:
        InsufficientPermissionsError (403) if the stored role does not match
    """
    async def role_checker(
        identity: VerifiedIdentity = Depends(get_current_identity),
        db: AsyncSession = Depends(get_db)
    ) -> VerifiedIdentity:
        decision = await authorize(db, identity, required_role)
        if decision != AccessDecision.ALLOWED:
            logger.warning("Denied %s access to %s", required_role.value, identity.email)
            raise InsufficientPermissionsError(
                message=f"Access denied. Required role: {required_role.value}"
            )
        return identity

    return role_checker


require_admin = require_role(UserRole.ADMIN)
