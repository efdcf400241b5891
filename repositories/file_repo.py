# repositories/file_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from models import File
from typing import Optional


class FileRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save_file(self, storage_id: str, name: str, content_type: str, size: int, user_id: str) -> File:
        record = File(storage_id=storage_id, name=name, type=content_type, size=size, user_id=user_id)
        async with self.session_factory() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def get_by_storage_id(self, storage_id: str) -> Optional[File]:
        async with self.session_factory() as session:
            q = await session.execute(select(File).where(File.storage_id == storage_id))
            return q.scalars().first()
