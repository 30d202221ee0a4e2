from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import structlog

from charity.api.donations import donation_filters
from charity.core.auth import Principal, require_admin
from charity.database.database import get_db
from charity.schemas.donation import DonationFilters, DonationResponse
from charity.schemas.stats import StatsResponse
from charity.services.export import rows_to_csv
from charity.services.ledger import DonationLedger
from charity.services.reporting import EXPORT_FIELDS, ReportingEngine

router = APIRouter(prefix="/admin", tags=["admin"])
logger = structlog.get_logger(__name__)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Registration and donation aggregates"""
    return await ReportingEngine(db, principal).stats()


@router.get("/donations", response_model=List[DonationResponse])
async def list_all_donations(
    filters: DonationFilters = Depends(donation_filters),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every donation, filtered by status and created_at range"""
    donations = await DonationLedger(db).list_donations(principal, filters)
    return [DonationResponse.model_validate(d) for d in donations]


@router.get("/registrations/export")
async def export_registrations(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Registrations as a CSV download"""
    rows = await ReportingEngine(db, principal).export_registrations()
    logger.info("Registrations exported", admin_id=principal.id, count=len(rows))

    return Response(
        content=rows_to_csv(rows, EXPORT_FIELDS),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="registrations.csv"'}
    )
