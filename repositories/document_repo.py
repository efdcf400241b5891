# repositories/document_repo.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, delete
from models import Document, DocumentKind, Suggestion
from typing import List, Optional
from datetime import datetime
from .base import ensure_internal_id


class DocumentRepository:
    """
    Documents are versioned by time: every save appends a revision under the
    same external id and the newest revision is the current one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save_document(
            self,
            external_id: str,
            title: str,
            content: Optional[str],
            kind: DocumentKind,
            user_id: str,
            created_at: Optional[datetime] = None,
    ) -> Document:
        document = Document(
            external_id=external_id,
            title=title,
            content=content,
            kind=kind,
            user_id=user_id,
        )
        if created_at:
            document.created_at = created_at
        async with self.session_factory() as session:
            session.add(document)
            await session.commit()
            await session.refresh(document)
            return document

    async def get_by_external_id(self, external_id: str) -> Optional[Document]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Document)
                .where(Document.external_id == external_id)
                .order_by(Document.created_at.desc())
                .limit(1)
            )
            return q.scalars().first()

    async def get_by_id(self, document_id: str) -> Optional[Document]:
        ensure_internal_id(document_id)
        async with self.session_factory() as session:
            return await session.get(Document, document_id)

    async def list_revisions(self, external_id: str) -> List[Document]:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Document)
                .where(Document.external_id == external_id)
                .order_by(Document.created_at)
            )
            return list(q.scalars().all())

    async def delete_revisions_after(self, external_id: str, timestamp: datetime) -> List[Document]:
        """Deletes revisions created strictly after timestamp, with their suggestions."""
        async with self.session_factory() as session:
            q = await session.execute(
                select(Document).where(
                    Document.external_id == external_id,
                    Document.created_at > timestamp,
                )
            )
            doomed = list(q.scalars().all())
            if not doomed:
                return []
            ids = [d.id for d in doomed]
            await session.execute(delete(Suggestion).where(Suggestion.document_id.in_(ids)))
            await session.execute(delete(Document).where(Document.id.in_(ids)))
            await session.commit()
            return doomed
