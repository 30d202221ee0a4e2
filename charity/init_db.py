"""
Database bootstrap script
Creates the tables and the admin user, then prints a bearer token for it.

    python -m charity.init_db
"""
import asyncio
from datetime import timedelta
from sqlalchemy import select
import logging
import structlog

from charity.core.auth import ADMIN_ROLE, create_access_token
from charity.core.config import get_settings
from charity.database.database import AsyncSessionLocal, close_db, init_db
from charity.models.user import User

logging.basicConfig(level=logging.INFO)
logger = structlog.get_logger(__name__)


async def seed_admin(session, email: str, name: str) -> User:
    """Return the admin user with this email, creating it if missing"""
    result = await session.execute(select(User).where(User.email == email))
    admin = result.scalar_one_or_none()
    if admin is not None:
        logger.info("Admin already exists", email=email)
        return admin

    admin = User(email=email, name=name, role=ADMIN_ROLE)
    session.add(admin)
    await session.commit()
    logger.info("Admin created", email=email, user_id=admin.id)
    return admin


async def bootstrap() -> str:
    settings = get_settings()
    try:
        await init_db()
        async with AsyncSessionLocal() as session:
            admin = await seed_admin(session, settings.admin_email, settings.admin_name)
            token = create_access_token(
                {"id": admin.id, "role": admin.role, "email": admin.email},
                expires_delta=timedelta(seconds=settings.jwt_expiration)
            )
    finally:
        await close_db()
    return token


def main():
    token = asyncio.run(bootstrap())
    print(token)


if __name__ == "__main__":
    main()
