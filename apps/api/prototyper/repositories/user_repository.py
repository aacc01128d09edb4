"""User lookups and creation."""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from prototyper.database.models import User, utc_now
from prototyper.database.session import session_scope
from prototyper.exceptions import StoreError


class UserRepository:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_id(self, user_id: str) -> User | None:
        return await self._first("find_by_id", select(User).where(User.id == user_id))

    async def find_by_email(self, email: str) -> User | None:
        return await self._first("find_by_email", select(User).where(User.email == email.lower()))

    async def create(self, email: str) -> User:
        user = User(email=email.lower())
        try:
            async with session_scope(self._session_factory) as session:
                session.add(user)
        except IntegrityError as e:
            raise StoreError("create_user", f"user {email} already exists") from e
        except SQLAlchemyError as e:
            raise StoreError("create_user", str(e)) from e
        return user

    async def update_last_login(self, user_id: str) -> None:
        now = utc_now()
        try:
            async with session_scope(self._session_factory) as session:
                await session.execute(
                    update(User).where(User.id == user_id).values(last_login_at=now, updated_at=now)
                )
        except SQLAlchemyError as e:
            raise StoreError("update_last_login", str(e)) from e

    async def _first(self, operation: str, stmt) -> User | None:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(operation, str(e)) from e
