# endpoints/api_history.py
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query

from containers import Container
from dtos import ChatDTO, HistoryDTO
from errors import ChatError
from repositories.chat_repo import ChatRepository
from services.auth_service import SessionUser
from .utils import get_current_user, require_user

router = APIRouter(prefix="/api/history")


@router.get("", response_model=HistoryDTO)
@inject
async def get_history(
        limit: int = Query(10, ge=1, le=100),
        starting_after: Optional[str] = Query(None),
        ending_before: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        cr: ChatRepository = Depends(Provide[Container.chat_repo]),
):
    """
    The user's chats, newest first. starting_after pages towards older
    chats, ending_before towards newer ones; cursors are chat ids.
    """
    if starting_after and ending_before:
        raise ChatError("bad_request:api", "Only one of starting_after or ending_before can be provided.")
    user = require_user(user)

    chats = await cr.list_chats_for_user(user.id)
    ids = [c.external_id for c in chats]
    start = 0
    if starting_after and starting_after in ids:
        start = ids.index(starting_after) + 1
    elif ending_before and ending_before in ids:
        chats = chats[:ids.index(ending_before)]

    page = chats[start:start + limit]
    return HistoryDTO(
        chats=[ChatDTO.from_model(c) for c in page],
        has_more=start + limit < len(chats),
    )
