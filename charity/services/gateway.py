"""
Gateway Bridge

Entry point of the fake payment processor. A confirmation appends an audit
entry and moves the donation to the reported outcome in one transaction.
Replays are recorded, not rejected: the last confirmation wins.
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from datetime import datetime
import structlog

from charity.core.exceptions import NotFoundError, StorageError, ValidationError
from charity.middleware.metrics import payment_confirmations_total
from charity.models.donation import DonationStatus, PaymentAttempt
from charity.services.ledger import DonationLedger

logger = structlog.get_logger(__name__)

KNOWN_OUTCOMES = {status.value for status in DonationStatus}


def outcome_label(outcome: str) -> str:
    """Metric label for an outcome; unknown labels share one series"""
    return outcome if outcome in KNOWN_OUTCOMES else "other"


class GatewayBridge:
    """Applies gateway callbacks to the ledger"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = DonationLedger(db)

    async def confirm(
        self,
        gateway_reference: str,
        outcome: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not gateway_reference or not outcome:
            raise ValidationError("ref and status required")

        donation = await self.ledger.get_by_reference(gateway_reference)
        if donation is None:
            logger.warning("Confirmation for unknown reference", gateway_reference=gateway_reference)
            raise NotFoundError("Donation not found")

        donation_id = donation.id
        previous_status = donation.status
        if previous_status != DonationStatus.PENDING.value:
            logger.warning(
                "Re-confirming a settled donation",
                donation_id=donation_id,
                previous_status=previous_status,
                outcome=outcome
            )

        now = datetime.utcnow()
        raw_response = dict(payload or {})
        raw_response["received_at"] = now.isoformat()

        try:
            self.db.add(PaymentAttempt(
                donation_id=donation_id,
                status=outcome,
                raw_response=raw_response,
            ))
            donation.status = outcome
            donation.updated_at = now
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to confirm payment",
                error=str(e),
                donation_id=donation_id,
                outcome=outcome
            )
            raise StorageError("Payment confirmation failed") from e

        payment_confirmations_total.labels(outcome=outcome_label(outcome)).inc()
        logger.info(
            "Payment confirmed",
            donation_id=donation_id,
            previous_status=previous_status,
            status=outcome
        )
