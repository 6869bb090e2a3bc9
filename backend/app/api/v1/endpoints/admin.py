"""
Admin API Endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.guards import require_admin
from backend.app.core.identity import VerifiedIdentity
from backend.app.db.session import get_db
from backend.app.schemas.audit import AuditLogListResponse, AuditLogResponse
from backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action, e.g. ROLE_CHANGED"),
    target_email: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    identity: VerifiedIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Most recent audit entries (Admin only)."""
    logs = await get_audit_trail(db, target_email=target_email, action=action, limit=limit)
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
