"""
Registration store

Registrations are opaque form payloads keyed by their owner.
"""
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
import structlog

from charity.core.auth import Principal
from charity.core.exceptions import StorageError
from charity.models.registration import Registration
from charity.models.user import User
from charity.services.users import mirror_principal

logger = structlog.get_logger(__name__)


class RegistrationStore:
    """Create and list event registrations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner: Principal, payload: Optional[Dict[str, Any]] = None) -> int:
        """Create a registration owned by the principal, returning its id"""
        owner_id = owner.id
        try:
            await mirror_principal(self.db, owner)
            registration = Registration(user_id=owner_id, data=payload or {})
            self.db.add(registration)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create registration", error=str(e), user_id=owner_id)
            raise StorageError("Registration creation failed") from e

        logger.info("Registration created", registration_id=registration.id, user_id=owner_id)
        return registration.id

    async def list(self, principal: Principal, email: Optional[str] = None) -> List[Registration]:
        """List registrations visible to the principal, newest first.

        ``email`` narrows the result to owners whose email contains it.
        """
        query = select(Registration)

        if not principal.is_admin:
            query = query.where(Registration.user_id == principal.id)

        if email:
            query = query.join(User, User.id == Registration.user_id).where(
                User.email.like(f"%{email}%")
            )

        query = query.order_by(Registration.created_at.desc(), Registration.id.asc())

        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to fetch registrations", error=str(e), user_id=principal.id)
            raise StorageError("Failed to fetch registrations") from e
