import uuid

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from portal.settings import settings

Base = declarative_base()

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    future=True
)

async_session = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session


def new_id() -> str:
    """Идентификатор документа: используется и как сегмент URL приглашения"""
    return uuid.uuid4().hex
