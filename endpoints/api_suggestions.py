# endpoints/api_suggestions.py
from typing import List, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query

from containers import Container
from dtos import SuggestionDTO
from errors import ChatError
from repositories.suggestion_repo import SuggestionRepository
from services.auth_service import SessionUser
from services.identifiers import IdentifierResolver
from .utils import get_current_user, require_user

router = APIRouter(prefix="/api/suggestions")


@router.get("", response_model=List[SuggestionDTO])
@inject
async def get_suggestions(
        documentId: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        resolver: IdentifierResolver = Depends(Provide[Container.document_resolver]),
        sr: SuggestionRepository = Depends(Provide[Container.suggestion_repo]),
):
    """Suggestions attached to the current revision of the document."""
    if not documentId:
        raise ChatError("bad_request:api", "Parameter documentId is required.")
    user = require_user(user, "suggestions")
    document = await resolver.resolve_record(documentId)
    if document is None:
        return []
    if document.user_id != user.id:
        raise ChatError("forbidden:api")
    suggestions = await sr.get_suggestions_for_document(document.id)
    return [SuggestionDTO.from_model(s) for s in suggestions]
