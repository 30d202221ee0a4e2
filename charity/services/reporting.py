"""
Reporting Engine

Read-only aggregates over donations and registrations for administrators.
"""
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List
import json
import structlog

from charity.core.auth import Principal
from charity.core.exceptions import AuthorizationError, StorageError
from charity.models.donation import Donation
from charity.models.registration import Registration

logger = structlog.get_logger(__name__)

EXPORT_FIELDS = ["id", "user_id", "data", "created_at"]


class ReportingEngine:
    """Admin aggregates and exports"""

    def __init__(self, db: AsyncSession, principal: Principal):
        if not principal.is_admin:
            raise AuthorizationError("Admin access required")
        self.db = db
        self.principal = principal

    async def stats(self) -> Dict[str, Any]:
        """Counts and sums over the full tables.

        ``total_amount_cents`` covers every donation whatever its status;
        ``by_status`` only lists statuses that have at least one donation.
        """
        try:
            registration_count = await self.db.scalar(
                select(func.count()).select_from(Registration)
            )
            donation_count, total_amount = (await self.db.execute(
                select(func.count(Donation.id), func.coalesce(func.sum(Donation.amount_cents), 0))
            )).one()
            rows = (await self.db.execute(
                select(Donation.status, func.count(Donation.id)).group_by(Donation.status)
            )).all()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch stats", error=str(e))
            raise StorageError("Failed to fetch stats") from e

        stats = {
            "registration_count": int(registration_count or 0),
            "donation_count": int(donation_count or 0),
            "total_amount_cents": int(total_amount or 0),
            "by_status": {status: int(count) for status, count in rows},
        }
        logger.info(
            "Stats computed",
            admin_id=self.principal.id,
            donation_count=stats["donation_count"],
            total_amount_cents=stats["total_amount_cents"]
        )
        return stats

    async def export_registrations(self) -> List[Dict[str, Any]]:
        """One flat record per registration with its payload serialized to JSON text"""
        try:
            result = await self.db.execute(
                select(Registration).order_by(Registration.created_at.desc(), Registration.id.asc())
            )
            registrations = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to export registrations", error=str(e))
            raise StorageError("Export failed") from e

        return [
            {
                "id": registration.id,
                "user_id": registration.user_id,
                "data": json.dumps(registration.data if registration.data is not None else {}),
                "created_at": registration.created_at.isoformat(),
            }
            for registration in registrations
        ]
