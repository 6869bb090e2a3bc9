"""
Audit logging service for tracking security events and admin actions.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    USER_REGISTERED = "USER_REGISTERED"
    ROLE_CHANGED = "ROLE_CHANGED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Parcels
    PARCEL_CREATED = "PARCEL_CREATED"
    PARCEL_DELETED = "PARCEL_DELETED"

    # Payments
    CHECKOUT_STARTED = "CHECKOUT_STARTED"
    PAYMENT_SETTLED = "PAYMENT_SETTLED"

    # Riders
    RIDER_APPLIED = "RIDER_APPLIED"
    RIDER_APPROVED = "RIDER_APPROVED"
    RIDER_REJECTED = "RIDER_REJECTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_email: Optional[str] = None,
    target_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log a security or admin event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_email: Verified email of the caller performing the action
        target_email: Email of the user being acted upon (if applicable)
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_email=actor_email,
        action=action,
        target_email=target_email,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_email: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_email:
        query = query.where(AuditLog.target_email == target_email)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
