# repositories/subscriber_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, update, delete
from models import Subscriber
from typing import Optional


class SubscriberRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        async with self.session_factory() as session:
            q = await session.execute(select(Subscriber).where(Subscriber.email == email))
            return q.scalars().first()

    async def get_by_token(self, token: str) -> Optional[Subscriber]:
        async with self.session_factory() as session:
            q = await session.execute(select(Subscriber).where(Subscriber.token == token))
            return q.scalars().first()

    async def create(self, email: str, token: str) -> Subscriber:
        subscriber = Subscriber(email=email, token=token)
        async with self.session_factory() as session:
            session.add(subscriber)
            await session.commit()
            await session.refresh(subscriber)
            return subscriber

    async def set_token(self, subscriber_id: str, token: str) -> None:
        async with self.session_factory() as session:
            await session.execute(update(Subscriber).where(Subscriber.id == subscriber_id).values(token=token))
            await session.commit()

    async def confirm(self, subscriber_id: str) -> None:
        async with self.session_factory() as session:
            await session.execute(update(Subscriber).where(Subscriber.id == subscriber_id).values(confirmed=True))
            await session.commit()

    async def delete(self, subscriber_id: str) -> None:
        async with self.session_factory() as session:
            await session.execute(delete(Subscriber).where(Subscriber.id == subscriber_id))
            await session.commit()
