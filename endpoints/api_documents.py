# endpoints/api_documents.py
from datetime import datetime, timezone
from typing import List, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query

from containers import Container
from dtos import DocumentDTO, DocumentSaveDTO
from errors import ChatError
from models import Document, DocumentKind
from repositories.document_repo import DocumentRepository
from services.auth_service import SessionUser
from services.identifiers import IdentifierResolver
from .utils import get_current_user, require_user

router = APIRouter(prefix="/api/document")


def parse_timestamp(raw: str) -> datetime:
    """ISO-8601 or epoch milliseconds -> naive UTC datetime."""
    raw = raw.strip()
    try:
        if raw.isdigit():
            return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc).replace(tzinfo=None)
        parsed = datetime.fromisoformat(raw)
    except (ValueError, OverflowError, OSError):
        raise ChatError("bad_request:api", "Invalid timestamp") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


async def _load_revisions(identifier: str, dr: DocumentRepository, resolver: IdentifierResolver) -> List[Document]:
    revisions = await dr.list_revisions(identifier)
    if revisions:
        return revisions
    record = await resolver.resolve_record(identifier)
    if record is None:
        return []
    return await dr.list_revisions(record.external_id)


@router.get("", response_model=List[DocumentDTO])
@inject
async def get_document(
        id: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        dr: DocumentRepository = Depends(Provide[Container.document_repo]),
        resolver: IdentifierResolver = Depends(Provide[Container.document_resolver]),
):
    if not id:
        raise ChatError("bad_request:api", "Parameter id is missing")
    user = require_user(user, "document")
    revisions = await _load_revisions(id, dr, resolver)
    if not revisions:
        raise ChatError("not_found:document")
    if revisions[0].user_id != user.id:
        raise ChatError("forbidden:document")
    return [DocumentDTO.from_model(d) for d in revisions]


@router.post("", response_model=DocumentDTO)
@inject
async def save_document(
        payload: DocumentSaveDTO,
        id: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        dr: DocumentRepository = Depends(Provide[Container.document_repo]),
        resolver: IdentifierResolver = Depends(Provide[Container.document_resolver]),
):
    if not id:
        raise ChatError("bad_request:api", "Parameter id is required.")
    user = require_user(user, "document")
    revisions = await _load_revisions(id, dr, resolver)
    external_id = id
    if revisions:
        if revisions[0].user_id != user.id:
            raise ChatError("forbidden:document")
        external_id = revisions[0].external_id
    document = await dr.save_document(
        external_id=external_id,
        title=payload.title,
        content=payload.content,
        kind=DocumentKind(payload.kind),
        user_id=user.id,
    )
    return DocumentDTO.from_model(document)


@router.delete("")
@inject
async def delete_document_revisions(
        id: Optional[str] = Query(None),
        timestamp: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        dr: DocumentRepository = Depends(Provide[Container.document_repo]),
        resolver: IdentifierResolver = Depends(Provide[Container.document_resolver]),
):
    """Deletes the revisions created after timestamp; earlier ones stay."""
    if not id:
        raise ChatError("bad_request:api", "Parameter id is required.")
    if not timestamp:
        raise ChatError("bad_request:api", "Parameter timestamp is required.")
    after = parse_timestamp(timestamp)
    user = require_user(user, "document")
    revisions = await _load_revisions(id, dr, resolver)
    if not revisions:
        raise ChatError("not_found:document")
    if revisions[0].user_id != user.id:
        raise ChatError("forbidden:document")
    deleted = await dr.delete_revisions_after(revisions[0].external_id, after)
    return {"id": id, "deleted": bool(deleted)}
