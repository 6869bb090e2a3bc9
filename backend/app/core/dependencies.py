"""
Request dependencies for FastAPI.

The identity provider, payment provider and domain services are built here
and injected into routes; tests replace them through
`app.dependency_overrides`.
"""

from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.identity import IdentityProvider, JWTIdentityProvider, VerifiedIdentity, verify
from backend.app.db.session import get_db
from backend.app.domain.payments.provider import PaymentProvider, StripePaymentProvider
from backend.app.domain.payments.settlement_service import SettlementCoordinator
from backend.app.domain.riders.rider_service import RiderLifecycleService

_identity_provider = JWTIdentityProvider()
_payment_provider: Optional[StripePaymentProvider] = None


def get_identity_provider() -> IdentityProvider:
    return _identity_provider


def get_payment_provider() -> PaymentProvider:
    # Created lazily so the breaker is shared across requests
    global _payment_provider
    if _payment_provider is None:
        _payment_provider = StripePaymentProvider()
    return _payment_provider


async def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    provider: IdentityProvider = Depends(get_identity_provider)
) -> VerifiedIdentity:
    """
    FastAPI dependency for bearer-token authentication.

    Returns:
        VerifiedIdentity for the caller

    Raises:
        AuthenticationError / TokenRevokedError (401)
    """
    return await verify(authorization, provider)


def get_settlement_coordinator(
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider)
) -> SettlementCoordinator:
    return SettlementCoordinator(db=db, provider=provider)


def get_rider_service(db: AsyncSession = Depends(get_db)) -> RiderLifecycleService:
    return RiderLifecycleService(db)
