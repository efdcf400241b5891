# repositories/vote_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from models import Vote
from typing import List


class VoteRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert_vote(self, chat_id: str, message_id: str, is_upvoted: bool) -> Vote:
        """At most one vote per (chat, message); a second vote overwrites the first."""
        async with self.session_factory() as session:
            vote = await self._find(session, chat_id, message_id)
            if vote:
                vote.is_upvoted = is_upvoted
                await session.commit()
                return vote
            vote = Vote(chat_id=chat_id, message_id=message_id, is_upvoted=is_upvoted)
            session.add(vote)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                vote = await self._find(session, chat_id, message_id)
                vote.is_upvoted = is_upvoted
                await session.commit()
            return vote

    async def get_votes_for_chat(self, chat_id: str) -> List[Vote]:
        async with self.session_factory() as session:
            q = await session.execute(select(Vote).where(Vote.chat_id == chat_id))
            return list(q.scalars().all())

    @staticmethod
    async def _find(session: AsyncSession, chat_id: str, message_id: str):
        q = await session.execute(
            select(Vote).where(Vote.chat_id == chat_id, Vote.message_id == message_id)
        )
        return q.scalars().first()
