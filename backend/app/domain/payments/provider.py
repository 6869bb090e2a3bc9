"""
Payment provider interface and its Stripe implementation.

The settlement coordinator only sees `PaymentProvider`; the Stripe SDK is
confined to `StripePaymentProvider`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import stripe

from backend.app.core.config import settings
from backend.app.core.exceptions import PaymentProviderError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)

PAID = "paid"


@dataclass
class CheckoutSession:
    """Provider-neutral view of a checkout session."""
    id: str
    url: Optional[str] = None
    payment_status: str = "unpaid"
    payment_intent_id: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


@dataclass
class LineItem:
    name: str
    unit_amount: int  # minor units
    currency: str
    quantity: int = 1


@runtime_checkable
class PaymentProvider(Protocol):
    """Creates and looks up hosted checkout sessions."""

    async def create_session(
        self,
        line_item: LineItem,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: str,
    ) -> CheckoutSession: ...

    async def retrieve_session(self, session_id: str) -> CheckoutSession: ...


def _session_from_stripe(session: Any) -> CheckoutSession:
    payment_intent = session.get("payment_intent")
    # expanded sessions carry the whole PaymentIntent object
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = payment_intent.get("id")

    customer_email = session.get("customer_email")
    if not customer_email:
        details = session.get("customer_details") or {}
        customer_email = details.get("email")

    return CheckoutSession(
        id=session.get("id"),
        url=session.get("url"),
        payment_status=session.get("payment_status") or "unpaid",
        payment_intent_id=payment_intent,
        amount_total=session.get("amount_total"),
        currency=session.get("currency"),
        customer_email=customer_email,
        metadata=dict(session.get("metadata") or {}),
    )


class StripePaymentProvider:
    """
    Stripe Checkout implementation of `PaymentProvider`.

    The Stripe SDK is synchronous, so calls run in a worker thread. All
    calls share one circuit breaker; an open circuit or any Stripe error
    surfaces as `PaymentProviderError`.
    """

    def __init__(self, api_key: Optional[str] = None, breaker: Optional[CircuitBreaker] = None):
        self._api_key = api_key or settings.stripe_secret_key
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=settings.provider_failure_threshold,
            reset_timeout=settings.provider_reset_timeout,
        )

    async def _call(self, func, **kwargs):
        async def run():
            return await asyncio.to_thread(func, api_key=self._api_key, **kwargs)

        try:
            return await self._breaker.call(run)
        except CircuitOpenError as e:
            raise PaymentProviderError("Payment provider temporarily unavailable") from e
        except stripe.StripeError as e:
            logger.error("Stripe request failed: %s", e)
            raise PaymentProviderError(
                message=getattr(e, "user_message", None) or "Payment provider request failed",
                details={"provider_error": type(e).__name__},
            ) from e

    async def create_session(
        self,
        line_item: LineItem,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: str,
    ) -> CheckoutSession:
        session = await self._call(
            stripe.checkout.Session.create,
            mode="payment",
            line_items=[{
                "price_data": {
                    "currency": line_item.currency,
                    "unit_amount": line_item.unit_amount,
                    "product_data": {"name": line_item.name},
                },
                "quantity": line_item.quantity,
            }],
            customer_email=customer_email,
            metadata=metadata,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return _session_from_stripe(session)

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        session = await self._call(stripe.checkout.Session.retrieve, id=session_id)
        return _session_from_stripe(session)
