# repositories/message_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, delete, func
from models import Message, Chat
from typing import List, Optional
from datetime import datetime
from .base import ensure_internal_id


class MessageRepository:
    """
    Repository for chat messages.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add_message(
            self,
            chat_id: str,
            role: str,
            parts: list,
            attachments: Optional[list] = None,
            message_id: Optional[str] = None,
            created_at: Optional[datetime] = None,
    ) -> Message:
        """Appends a message to the chat."""
        message = Message(
            chat_id=chat_id,
            role=role,
            parts=parts or [],
            attachments=attachments or [],
        )
        if message_id:
            message.id = message_id
        if created_at:
            message.created_at = created_at
        async with self.session_factory() as session:
            session.add(message)
            await session.commit()
            await session.refresh(message)
            return message

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        ensure_internal_id(message_id)
        async with self.session_factory() as session:
            return await session.get(Message, message_id)

    async def get_messages_for_chat(self, chat_id: str) -> List[Message]:
        """
        All messages of the chat, oldest first.
        """
        async with self.session_factory() as session:
            q = await session.execute(
                select(Message)
                .where(Message.chat_id == chat_id)
                .order_by(Message.created_at)
            )
            return list(q.scalars().all())

    async def get_messages_by_external_chat_id(self, external_id: str) -> List[Message]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Message)
                .join(Chat, Chat.id == Message.chat_id)
                .where(Chat.external_id == external_id)
                .order_by(Message.created_at)
            )
            return list(q.scalars().all())

    async def count_user_messages_since(self, chat_id: str, since: datetime) -> int:
        async with self.session_factory() as session:
            q = await session.execute(
                select(func.count(Message.id)).where(
                    Message.chat_id == chat_id,
                    Message.role == "user",
                    Message.created_at >= since,
                )
            )
            return int(q.scalar_one())

    async def delete_messages_after(self, chat_id: str, timestamp: datetime) -> None:
        async with self.session_factory() as session:
            await session.execute(
                delete(Message).where(Message.chat_id == chat_id, Message.created_at > timestamp)
            )
            await session.commit()
