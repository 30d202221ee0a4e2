from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime
import structlog

from charity.core.auth import Principal, get_current_principal
from charity.core.config import get_settings
from charity.database.database import get_db
from charity.schemas.donation import (
    CreateDonationRequest,
    CreateDonationResponse,
    DonationFilters,
    DonationResponse,
)
from charity.services.ledger import DonationLedger

router = APIRouter(prefix="/donations", tags=["donations"])
logger = structlog.get_logger(__name__)


def donation_filters(
    status: Optional[str] = Query(None, description="Only donations with this status"),
    date_from: Optional[datetime] = Query(None, alias="from", description="created_at lower bound (inclusive)"),
    date_to: Optional[datetime] = Query(None, alias="to", description="created_at upper bound (inclusive)"),
) -> DonationFilters:
    """Query-string filters shared by the user and admin listings"""
    return DonationFilters(status=status, date_from=date_from, date_to=date_to)


def checkout_url(gateway_reference: str) -> str:
    return f"{get_settings().checkout_path}?ref={gateway_reference}"


@router.post("", response_model=CreateDonationResponse, status_code=201)
async def create_donation(
    donation_data: CreateDonationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a pending donation
    Flow:
    1. Store the donation together with its "initiated" payment attempt
    2. Hand back the checkout URL carrying the gateway reference
    """
    logger.info(
        "Creating donation",
        user_id=principal.id,
        amount_cents=donation_data.amount_cents,
        registration_id=donation_data.registration_id
    )

    created = await DonationLedger(db).create_donation(
        principal,
        amount_cents=donation_data.amount_cents,
        registration_id=donation_data.registration_id,
        metadata=donation_data.metadata,
    )

    return CreateDonationResponse(
        donation_id=created["donation_id"],
        gateway_reference=created["gateway_reference"],
        checkout_url=checkout_url(created["gateway_reference"])
    )


@router.get("", response_model=List[DonationResponse])
async def list_donations(
    filters: DonationFilters = Depends(donation_filters),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """List donations; non-admins only see their own"""
    donations = await DonationLedger(db).list_donations(principal, filters)
    return [DonationResponse.model_validate(d) for d in donations]
