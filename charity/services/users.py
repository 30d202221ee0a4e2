"""
Identity mirror

Signup and login live with the identity provider. The first write made by a
verified principal adds its ``users`` row inside the caller's transaction.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from charity.core.auth import Principal
from charity.models.user import User

logger = structlog.get_logger(__name__)


async def mirror_principal(db: AsyncSession, principal: Principal) -> User:
    """Return the users row for the principal, staging one if it is missing.

    Flushes but never commits.
    """
    user = await db.get(User, principal.id)
    if user is not None:
        return user

    email = principal.email
    if email:
        taken_by = await db.scalar(select(User.id).where(User.email == email))
        if taken_by is not None:
            logger.warning("Email already mirrored for another user", user_id=principal.id, other_id=taken_by)
            email = None

    user = User(id=principal.id, email=email, role=principal.role)
    db.add(user)
    await db.flush()
    logger.info("Identity mirrored", user_id=principal.id, role=principal.role)
    return user
