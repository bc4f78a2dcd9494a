import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from portal.auth.identity import IdentityGateway
from portal.db import Base
from portal.errors import DuplicateIdentityError
from portal.models import UserProfile, UserRole
from portal.settings import settings

logger = logging.getLogger(__name__)


async def init_models(engine: AsyncEngine):
    """Инициализация моделей базы данных и первого администратора"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        return

    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    await bootstrap_admin(
        async_session,
        IdentityGateway(async_session),
        settings.bootstrap_admin_email.lower(),
        settings.bootstrap_admin_password
    )


async def bootstrap_admin(session_factory: sessionmaker, identity: IdentityGateway, email: str, password: str):
    """Создает администратора, если профиля с таким email еще нет"""
    async with session_factory() as session:
        existing = await session.execute(select(UserProfile).where(UserProfile.email == email))
        if existing.scalar_one_or_none():
            return

        account = await identity.get_account_by_email(email)
        if account is not None:
            uid = account.id
        else:
            try:
                uid = await identity.create_account(email, password, "Admin")
            except DuplicateIdentityError:
                account = await identity.get_account_by_email(email)
                uid = account.id

        session.add(UserProfile(
            uid=uid,
            role=UserRole.ADMIN.value,
            name="Admin",
            email=email,
            password_changed=True
        ))
        await session.commit()
        logger.info(f"Создан администратор {email}")
