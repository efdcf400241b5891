# repositories/stream_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from models import Stream
from typing import List


class StreamRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_stream(self, chat_id: str) -> Stream:
        stream = Stream(chat_id=chat_id)
        async with self.session_factory() as session:
            session.add(stream)
            await session.commit()
            await session.refresh(stream)
            return stream

    async def get_streams_for_chat(self, chat_id: str) -> List[Stream]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Stream).where(Stream.chat_id == chat_id).order_by(Stream.created_at)
            )
            return list(q.scalars().all())
