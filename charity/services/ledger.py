"""
Donation Ledger

Owns Donation and PaymentAttempt rows. A donation is written together with
its ``initiated`` audit entry; listings are scoped to the caller unless the
caller is an admin.
"""
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import Any, Dict, List, Optional
from datetime import datetime
import secrets
import structlog

from charity.core.auth import Principal
from charity.core.exceptions import StorageError, ValidationError
from charity.middleware.metrics import donation_amount_cents_total, donations_created_total
from charity.models.donation import Donation, DonationStatus, PaymentAttempt, INITIATED
from charity.models.registration import Registration
from charity.schemas.donation import DonationFilters
from charity.services.users import mirror_principal

logger = structlog.get_logger(__name__)

REFERENCE_PREFIX = "PAY_"


def generate_gateway_reference() -> str:
    """Unguessable reference; it doubles as the bearer token of the confirm callback"""
    return REFERENCE_PREFIX + secrets.token_urlsafe(24)


class DonationLedger:
    """Business logic for donation records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_donation(
        self,
        principal: Principal,
        amount_cents: int,
        registration_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a pending donation and seed its audit trail.

        Returns ``{"donation_id", "gateway_reference"}``.
        """
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError("amount_cents must be a positive integer")

        reference = generate_gateway_reference()
        try:
            # Existence is checked, ownership is not
            if registration_id is not None and await self.db.get(Registration, registration_id) is None:
                raise ValidationError("unknown registration_id")

            await mirror_principal(self.db, principal)
            donation = Donation(
                user_id=principal.id,
                registration_id=registration_id,
                amount_cents=amount_cents,
                status=DonationStatus.PENDING.value,
                gateway_reference=reference,
                metadata_=metadata or {},
            )
            self.db.add(donation)
            # Flush to get the id; both rows commit or roll back together
            await self.db.flush()

            self.db.add(PaymentAttempt(
                donation_id=donation.id,
                status=INITIATED,
                raw_response={"created_at": datetime.utcnow().isoformat()},
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to create donation",
                error=str(e),
                user_id=principal.id,
                amount_cents=amount_cents
            )
            raise StorageError("Failed to create donation") from e

        donations_created_total.inc()
        donation_amount_cents_total.inc(amount_cents)
        logger.info(
            "Donation created",
            donation_id=donation.id,
            user_id=principal.id,
            registration_id=registration_id,
            amount_cents=amount_cents
        )

        return {"donation_id": donation.id, "gateway_reference": reference}

    async def list_donations(
        self,
        principal: Principal,
        filters: Optional[DonationFilters] = None,
    ) -> List[Donation]:
        """List donations visible to the principal, newest first"""
        filters = filters or DonationFilters()

        query = select(Donation).options(selectinload(Donation.attempts))

        # Non-admins only ever see their own rows, whatever the filters say
        if not principal.is_admin:
            query = query.where(Donation.user_id == principal.id)

        if filters.status:
            query = query.where(Donation.status == filters.status)
        if filters.date_from:
            query = query.where(Donation.created_at >= filters.date_from)
        if filters.date_to:
            query = query.where(Donation.created_at <= filters.date_to)

        # Ties on created_at keep insertion order
        query = query.order_by(Donation.created_at.desc(), Donation.id.asc())
        query = query.execution_options(populate_existing=True)

        try:
            result = await self.db.execute(query)
            donations = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list donations", error=str(e), user_id=principal.id)
            raise StorageError("Failed to list donations") from e

        logger.info(
            "Donations listed",
            user_id=principal.id,
            admin=principal.is_admin,
            status=filters.status,
            count=len(donations)
        )
        return donations

    async def get_by_reference(self, gateway_reference: str) -> Optional[Donation]:
        """Get a donation by gateway reference"""
        try:
            result = await self.db.execute(
                select(Donation)
                .where(Donation.gateway_reference == gateway_reference)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to look up donation", error=str(e))
            raise StorageError("Failed to look up donation") from e
