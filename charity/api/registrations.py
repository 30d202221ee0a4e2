from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import structlog

from charity.core.auth import Principal, get_current_principal
from charity.database.database import get_db
from charity.schemas.registration import (
    CreateRegistrationRequest,
    CreateRegistrationResponse,
    RegistrationResponse,
)
from charity.services.registration import RegistrationStore

router = APIRouter(prefix="/registrations", tags=["registrations"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=CreateRegistrationResponse)
async def create_registration(
    registration_data: CreateRegistrationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Create a registration owned by the caller"""
    registration_id = await RegistrationStore(db).create(principal, registration_data.data)
    return CreateRegistrationResponse(id=registration_id)


@router.get("", response_model=List[RegistrationResponse])
async def list_registrations(
    email: Optional[str] = Query(None, description="Substring of the owner's email"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """List registrations; non-admins only see their own"""
    registrations = await RegistrationStore(db).list(principal, email=email)
    return [RegistrationResponse.model_validate(r) for r in registrations]
