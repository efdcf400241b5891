# repositories/suggestion_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from models import Suggestion
from typing import List, Optional


class SuggestionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save_suggestion(
            self,
            document_id: str,
            original_text: str,
            suggested_text: str,
            user_id: str,
            description: Optional[str] = None,
    ) -> Suggestion:
        suggestion = Suggestion(
            document_id=document_id,
            original_text=original_text,
            suggested_text=suggested_text,
            description=description,
            user_id=user_id,
        )
        async with self.session_factory() as session:
            session.add(suggestion)
            await session.commit()
            await session.refresh(suggestion)
            return suggestion

    async def get_suggestions_for_document(self, document_id: str) -> List[Suggestion]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Suggestion)
                .where(Suggestion.document_id == document_id)
                .order_by(Suggestion.created_at)
            )
            return list(q.scalars().all())
