# repositories/user_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from models import User, UserType
from typing import Optional
from .base import ensure_internal_id


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_user(self, email: str, password_hash: Optional[str], user_type: UserType = UserType.REGULAR) -> User:
        user = User(email=email, password=password_hash, type=user_type)
        async with self.session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self.session_factory() as session:
            q = await session.execute(select(User).where(User.email == email))
            return q.scalars().first()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        ensure_internal_id(user_id)
        async with self.session_factory() as session:
            return await session.get(User, user_id)
