# repositories/chat_repo.py
import logging
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from models import Chat, Message, Vote, Stream, Visibility
from typing import List, Optional
from .base import ensure_internal_id

log = logging.getLogger(__name__)


class ChatRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_chat(
            self,
            external_id: str,
            user_id: str,
            title: str,
            visibility: Visibility = Visibility.PRIVATE,
    ) -> Chat:
        """
        Creates the chat for external_id, or returns the one that already exists.
        """
        existing = await self.get_by_external_id(external_id)
        if existing:
            return existing
        async with self.session_factory() as session:
            chat = Chat(external_id=external_id, user_id=user_id, title=title, visibility=visibility)
            session.add(chat)
            try:
                await session.commit()
            except IntegrityError:
                # lost a creation race against another writer
                await session.rollback()
                log.info("chat %s was created concurrently, reusing it", external_id)
                return await self.get_by_external_id(external_id)
            await session.refresh(chat)
            return chat

    async def get_by_external_id(self, external_id: str) -> Optional[Chat]:
        async with self.session_factory() as session:
            q = await session.execute(select(Chat).where(Chat.external_id == external_id))
            return q.scalars().first()

    async def get_by_id(self, chat_id: str) -> Optional[Chat]:
        ensure_internal_id(chat_id)
        async with self.session_factory() as session:
            return await session.get(Chat, chat_id)

    async def list_chats_for_user(self, user_id: str) -> List[Chat]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Chat).where(Chat.user_id == user_id).order_by(Chat.created_at.desc())
            )
            return list(q.scalars().all())

    async def update_visibility(self, chat_id: str, visibility: Visibility) -> None:
        async with self.session_factory() as session:
            await session.execute(update(Chat).where(Chat.id == chat_id).values(visibility=visibility))
            await session.commit()

    async def update_last_context(self, chat_id: str, context: dict) -> None:
        async with self.session_factory() as session:
            await session.execute(update(Chat).where(Chat.id == chat_id).values(last_context=context))
            await session.commit()

    async def delete_chat(self, chat_id: str) -> None:
        """Deletes the chat together with its messages, votes and stream handles."""
        async with self.session_factory() as session:
            await session.execute(delete(Vote).where(Vote.chat_id == chat_id))
            await session.execute(delete(Stream).where(Stream.chat_id == chat_id))
            await session.execute(delete(Message).where(Message.chat_id == chat_id))
            await session.execute(delete(Chat).where(Chat.id == chat_id))
            await session.commit()
