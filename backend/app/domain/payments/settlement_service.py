"""
Payment Settlement Coordinator (Domain Logic).

Reconciles a provider checkout session with the parcel and payment tables.
Settlement must be idempotent per provider transaction: repeated or
concurrent confirmations of the same checkout converge on one payment record
and one tracking id.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    BusinessValidationError,
    DuplicateTransactionError,
    InsufficientPermissionsError,
    PaymentProviderError,
    ResourceNotFoundError,
)
from backend.app.domain.payments.provider import CheckoutSession, LineItem, PaymentProvider
from backend.app.domain.payments.tracking import generate_tracking_id
from backend.app.models.parcel import Parcel
from backend.app.models.parcel_enums import PaymentStatus
from backend.app.models.payment import PaymentRecord

logger = logging.getLogger(__name__)


class SettlementOutcome(str, enum.Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    NOT_PAID = "not_paid"


@dataclass
class SettlementResult:
    outcome: SettlementOutcome
    transaction_id: Optional[str] = None
    tracking_id: Optional[str] = None
    parcel: Optional[Parcel] = None
    payment: Optional[PaymentRecord] = None

    @property
    def success(self) -> bool:
        return self.outcome != SettlementOutcome.NOT_PAID


class SettlementCoordinator:
    """
    Settles checkout sessions against internal records.

    Flow of `settle`:
    1. Retrieve the session from the provider (errors surface, no retry)
    2. Idempotency pre-check on the transaction id
    3. Bail out if the session is not paid
    4. Insert payment record + mark parcel paid in ONE transaction
    5. A unique violation on insert means a concurrent settle won;
       report its result instead
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: PaymentProvider,
        tracking_id_factory: Callable[[], str] = generate_tracking_id
    ):
        self.db = db
        self.provider = provider
        self.tracking_id_factory = tracking_id_factory

    async def open_checkout(self, parcel_id: int, customer_email: str) -> CheckoutSession:
        """
        Start a hosted checkout for an unpaid parcel owned by the caller.

        Raises:
            ResourceNotFoundError: Unknown parcel
            InsufficientPermissionsError: Parcel belongs to someone else
            BusinessValidationError: Parcel is already paid
            PaymentProviderError: Provider failure
        """
        parcel = await self.db.get(Parcel, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)
        if parcel.sender_email != customer_email:
            raise InsufficientPermissionsError("You can only pay for your own parcels")
        if parcel.payment_status == PaymentStatus.PAID:
            raise BusinessValidationError("Parcel is already paid", details={"parcel_id": parcel_id})

        domain = settings.site_domain.rstrip("/")
        line_item = LineItem(
            name=f"Please pay for: {parcel.name}",
            unit_amount=int(round(parcel.cost * 100)),
            currency=settings.payment_currency,
        )
        session = await self.provider.create_session(
            line_item=line_item,
            success_url=f"{domain}/dashboard/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{domain}/dashboard/payment-cancelled",
            metadata={"parcel_id": str(parcel.id), "parcel_name": parcel.name},
            customer_email=customer_email,
        )
        logger.info("Opened checkout session %s for parcel %s", session.id, parcel.id)
        return session

    async def settle(self, session_id: str) -> SettlementResult:
        """
        Settle a checkout session.

        Args:
            session_id: Provider checkout session id

        Returns:
            SettlementResult with outcome SETTLED, ALREADY_SETTLED or NOT_PAID

        Raises:
            BusinessValidationError: Empty session id
            PaymentProviderError: Provider unreachable or unknown session
            ResourceNotFoundError: Session metadata does not resolve to a parcel
        """
        if not session_id:
            raise BusinessValidationError("session_id is required")

        session = await self.provider.retrieve_session(session_id)
        transaction_id = session.payment_intent_id

        if transaction_id:
            existing = await self._find_payment(transaction_id)
            if existing is not None:
                logger.info("Transaction %s already settled", transaction_id)
                return self._already_settled(existing)

        if not session.is_paid:
            logger.info("Session %s not paid (status=%s)", session_id, session.payment_status)
            return SettlementResult(outcome=SettlementOutcome.NOT_PAID, transaction_id=transaction_id)

        if not transaction_id:
            raise PaymentProviderError(
                "Paid session has no payment intent",
                details={"session_id": session_id}
            )

        parcel_id = self._parcel_id(session)

        try:
            parcel, payment = await self._record_payment(session, transaction_id, parcel_id)
        except DuplicateTransactionError:
            winner = await self._find_payment(transaction_id)
            logger.info("Concurrent settlement of %s detected, returning stored result", transaction_id)
            return self._already_settled(winner)

        logger.info(
            "Settled transaction %s for parcel %s (tracking %s)",
            transaction_id, parcel.id, payment.tracking_id
        )
        return SettlementResult(
            outcome=SettlementOutcome.SETTLED,
            transaction_id=transaction_id,
            tracking_id=payment.tracking_id,
            parcel=parcel,
            payment=payment,
        )

    async def _find_payment(self, transaction_id: str) -> Optional[PaymentRecord]:
        result = await self.db.execute(
            select(PaymentRecord).where(PaymentRecord.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _already_settled(payment: PaymentRecord) -> SettlementResult:
        return SettlementResult(
            outcome=SettlementOutcome.ALREADY_SETTLED,
            transaction_id=payment.transaction_id,
            tracking_id=payment.tracking_id,
            payment=payment,
        )

    @staticmethod
    def _parcel_id(session: CheckoutSession) -> int:
        raw = session.metadata.get("parcel_id")
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ResourceNotFoundError("Parcel", raw)

    async def _record_payment(
        self,
        session: CheckoutSession,
        transaction_id: str,
        parcel_id: int
    ) -> tuple[Parcel, PaymentRecord]:
        """
        Insert the payment record and mark the parcel paid atomically.

        Raises:
            ResourceNotFoundError: Parcel missing (nothing written)
            DuplicateTransactionError: Unique index on transaction_id hit (rolled back)
        """
        try:
            parcel = await self.db.get(Parcel, parcel_id)
            if parcel is None:
                raise ResourceNotFoundError("Parcel", parcel_id)

            # A parcel paid through an earlier transaction keeps its tracking id
            if parcel.payment_status == PaymentStatus.PAID and parcel.tracking_id:
                tracking_id = parcel.tracking_id
            else:
                tracking_id = self.tracking_id_factory()
                stmt = update(Parcel).where(
                    Parcel.id == parcel.id,
                    Parcel.payment_status == PaymentStatus.UNPAID
                ).values(
                    payment_status=PaymentStatus.PAID,
                    tracking_id=tracking_id
                ).execution_options(synchronize_session=False)
                result = await self.db.execute(stmt)

                if result.rowcount == 0:
                    # Paid through another transaction since we read it
                    stored = await self.db.execute(
                        select(Parcel.tracking_id).where(Parcel.id == parcel.id)
                    )
                    tracking_id = stored.scalar_one_or_none()
                    if tracking_id is None:
                        raise ResourceNotFoundError("Parcel", parcel_id)

            amount = parcel.cost
            if session.amount_total is not None:
                amount = session.amount_total / 100

            payment = PaymentRecord(
                amount=amount,
                currency=session.currency or settings.payment_currency,
                customer_email=(session.customer_email or parcel.sender_email).lower(),
                parcel_id=parcel.id,
                parcel_name=session.metadata.get("parcel_name") or parcel.name,
                transaction_id=transaction_id,
                payment_status=session.payment_status,
                tracking_id=tracking_id,
            )
            self.db.add(payment)
            await self.db.flush()  # unique violation surfaces here
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self._find_payment(transaction_id) is None:
                raise
            raise DuplicateTransactionError(transaction_id) from e
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(payment)
        await self.db.refresh(parcel)
        return parcel, payment
