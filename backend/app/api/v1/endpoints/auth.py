"""
Authentication API endpoints.

Tokens are issued by the identity provider; the backend only verifies and
revokes them.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_identity
from backend.app.core.identity import VerifiedIdentity
from backend.app.core.token_revocation import revoke_token
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/logout")
async def logout(
    request: Request,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the presented bearer token.

    Subsequent requests with the same token are rejected with 401.
    """
    revoked = await revoke_token(identity.token, identity.email, identity.claims.get("exp"))

    if revoked:
        await log_event(
            db=db,
            action=AuditAction.TOKEN_REVOKED,
            actor_email=identity.email,
            target_email=identity.email,
            ip_address=request.client.host if request.client else None
        )

    return {"revoked": revoked}
