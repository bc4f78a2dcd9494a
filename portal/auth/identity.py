import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from portal.auth.utils import get_password_hash, verify_password
from portal.db import async_session
from portal.errors import AccountNotFoundError, DuplicateIdentityError, DependencyUnavailableError
from portal.models import IdentityAccount

logger = logging.getLogger(__name__)


class IdentityGateway:
    """
    Сервис учетных записей (логин, пароль, блокировка).

    Каждый вызов выполняется в собственной сессии и фиксируется сразу, поэтому
    операции с учетными записями никогда не входят в пакет записи профилей и
    команд и не откатываются вместе с ним.
    """

    def __init__(self, session_factory: Optional[sessionmaker]):
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        if self._session_factory is None:
            raise DependencyUnavailableError("Identity service is not initialized.")
        return self._session_factory()

    async def create_account(self, email: str, password: str, display_name: str = None) -> str:
        """
        Создает учетную запись и возвращает ее id

        Raises:
            DuplicateIdentityError: email уже зарегистрирован
        """
        email = email.lower()
        async with self._session() as session:
            existing = await session.execute(
                select(IdentityAccount.id).where(IdentityAccount.email == email)
            )
            if existing.scalar_one_or_none():
                raise DuplicateIdentityError(email)

            account = IdentityAccount(
                email=email,
                password=get_password_hash(password),
                display_name=display_name,
                disabled=False
            )
            session.add(account)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateIdentityError(email)

            logger.info(f"Создана учетная запись {account.id} для {email}")
            return account.id

    async def delete_account(self, account_id: str) -> None:
        async with self._session() as session:
            account = await session.get(IdentityAccount, account_id)
            if account is None:
                raise AccountNotFoundError(f"There is no user record corresponding to the identifier {account_id}.")
            await session.delete(account)
            await session.commit()
            logger.info(f"Удалена учетная запись {account_id}")

    async def set_disabled(self, account_id: str, disabled: bool) -> None:
        async with self._session() as session:
            account = await session.get(IdentityAccount, account_id)
            if account is None:
                raise AccountNotFoundError(f"There is no user record corresponding to the identifier {account_id}.")
            account.disabled = disabled
            await session.commit()

    async def update_password(self, account_id: str, password: str) -> None:
        async with self._session() as session:
            account = await session.get(IdentityAccount, account_id)
            if account is None:
                raise AccountNotFoundError(f"There is no user record corresponding to the identifier {account_id}.")
            account.password = get_password_hash(password)
            await session.commit()

    async def get_account(self, account_id: str) -> Optional[IdentityAccount]:
        async with self._session() as session:
            return await session.get(IdentityAccount, account_id)

    async def get_account_by_email(self, email: str) -> Optional[IdentityAccount]:
        async with self._session() as session:
            result = await session.execute(
                select(IdentityAccount).where(IdentityAccount.email == email.lower())
            )
            return result.scalar_one_or_none()

    async def list_accounts(self) -> List[IdentityAccount]:
        async with self._session() as session:
            result = await session.execute(select(IdentityAccount).order_by(IdentityAccount.created_at))
            return list(result.scalars().all())

    async def authenticate(self, email: str, password: str) -> Optional[IdentityAccount]:
        """Учетная запись при верном пароле; None для неверного пароля или заблокированной записи"""
        account = await self.get_account_by_email(email)
        if account is None or account.disabled:
            return None
        if not verify_password(password, account.password):
            return None
        return account


identity_gateway = IdentityGateway(async_session)


def get_identity_gateway() -> IdentityGateway:
    return identity_gateway
