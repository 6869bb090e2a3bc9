"""
Rider Lifecycle Service (Domain Logic).

State machine for rider applications:

    PENDING → APPROVED   (promotes the applicant's user role to RIDER)
    PENDING → REJECTED

APPROVED and REJECTED are terminal. The status change and the role
promotion are committed in one transaction.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    BusinessValidationError,
    InvalidStateTransitionError,
    ResourceNotFoundError,
)
from backend.app.models.enums import UserRole
from backend.app.models.rider import RiderApplication
from backend.app.models.rider_enums import RiderStatus
from backend.app.models.user import User

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    RiderStatus.PENDING: {RiderStatus.APPROVED, RiderStatus.REJECTED},
    RiderStatus.APPROVED: set(),
    RiderStatus.REJECTED: set(),
}


@dataclass
class TransitionResult:
    rider: RiderApplication
    previous_status: RiderStatus
    promoted_user: Optional[User] = None
    role_changed: bool = False


class RiderLifecycleService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit_application(self, applicant_email: str, **fields) -> RiderApplication:
        """
        Create a rider application for the verified applicant.

        Any status in `fields` is ignored; applications always start PENDING.
        """
        fields.pop("status", None)
        fields.pop("email", None)

        application = RiderApplication(
            email=applicant_email,
            status=RiderStatus.PENDING,
            **fields
        )
        self.db.add(application)
        await self.db.commit()
        await self.db.refresh(application)

        logger.info("Rider application %s submitted by %s", application.id, applicant_email)
        return application

    async def transition(
        self,
        rider_id: int,
        new_status: RiderStatus,
        applicant_email: Optional[str] = None
    ) -> TransitionResult:
        """
        Move an application to `new_status`. Caller must already be authorized as admin.

        Args:
            rider_id: Rider application ID
            new_status: APPROVED or REJECTED
            applicant_email: Optional; must match the application's email if given

        Returns:
            TransitionResult with the updated application and, on approval, the promoted user

        Raises:
            ResourceNotFoundError: Unknown application, or approval for an email with no user
            InvalidStateTransitionError: Transition not defined from the current status
            BusinessValidationError: applicant_email does not match the application
        """
        application = await self.db.get(RiderApplication, rider_id)
        if application is None:
            raise ResourceNotFoundError("Rider application", rider_id)

        if applicant_email and applicant_email.lower() != application.email:
            raise BusinessValidationError(
                "Applicant email does not match the rider application",
                details={"rider_id": rider_id}
            )

        previous = application.status
        if new_status not in ALLOWED_TRANSITIONS[previous]:
            raise InvalidStateTransitionError("Rider application", previous.value, new_status.value)

        promoted = None
        role_changed = False
        try:
            if new_status == RiderStatus.APPROVED:
                result = await self.db.execute(
                    select(User).where(User.email == application.email)
                    .execution_options(populate_existing=True)
                )
                promoted = result.scalar_one_or_none()
                if promoted is None:
                    raise ResourceNotFoundError("User", application.email)

            # Conditional on the status read above; no row means another decision committed first
            stmt = update(RiderApplication).where(
                RiderApplication.id == rider_id,
                RiderApplication.status == previous
            ).values(
                status=new_status
            ).execution_options(synchronize_session=False)
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                await self.db.rollback()
                await self.db.refresh(application)
                raise InvalidStateTransitionError(
                    "Rider application", application.status.value, new_status.value
                )

            # Admins keep their role
            if promoted is not None and promoted.role == UserRole.USER:
                promoted.role = UserRole.RIDER
                role_changed = True

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(application)
        logger.info(
            "Rider application %s moved %s -> %s",
            rider_id, previous.value, new_status.value
        )
        return TransitionResult(
            rider=application,
            previous_status=previous,
            promoted_user=promoted,
            role_changed=role_changed
        )

    async def has_approved_application(self, email: str) -> bool:
        result = await self.db.execute(
            select(RiderApplication.id).where(
                RiderApplication.email == email,
                RiderApplication.status == RiderStatus.APPROVED
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None
