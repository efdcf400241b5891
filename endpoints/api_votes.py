# endpoints/api_votes.py
from typing import List, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query

from containers import Container
from dtos import VoteCreateDTO, VoteDTO, VotePatchDTO
from errors import ChatError
from models import Chat
from repositories.vote_repo import VoteRepository
from services.auth_service import SessionUser
from services.identifiers import IdentifierResolver
from .utils import get_current_user, require_user

router = APIRouter(prefix="/api/vote")


async def _owned_chat(chat_id: str, user: SessionUser, resolver: IdentifierResolver, missing: str) -> Chat:
    chat = await resolver.resolve_record(chat_id)
    if chat is None:
        raise ChatError(missing)
    if chat.user_id != user.id:
        raise ChatError("forbidden:vote")
    return chat


@router.get("", response_model=List[VoteDTO])
@inject
async def get_votes(
        chatId: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        resolver: IdentifierResolver = Depends(Provide[Container.chat_resolver]),
        vr: VoteRepository = Depends(Provide[Container.vote_repo]),
):
    if not chatId:
        raise ChatError("bad_request:api", "Parameter chatId is required.")
    user = require_user(user, "vote")
    chat = await _owned_chat(chatId, user, resolver, "not_found:chat")
    votes = await vr.get_votes_for_chat(chat.id)
    return [VoteDTO.from_model(v, chat.external_id) for v in votes]


@router.post("", response_model=VoteDTO)
@inject
async def create_vote(
        payload: VoteCreateDTO,
        user: Optional[SessionUser] = Depends(get_current_user),
        resolver: IdentifierResolver = Depends(Provide[Container.chat_resolver]),
        vr: VoteRepository = Depends(Provide[Container.vote_repo]),
):
    user = require_user(user, "vote")
    chat = await _owned_chat(payload.chat_id, user, resolver, "not_found:vote")
    vote = await vr.upsert_vote(chat.id, payload.message_id, payload.is_upvoted)
    return VoteDTO.from_model(vote, chat.external_id)


@router.patch("", response_model=VoteDTO)
@inject
async def update_vote(
        payload: VotePatchDTO,
        user: Optional[SessionUser] = Depends(get_current_user),
        resolver: IdentifierResolver = Depends(Provide[Container.chat_resolver]),
        vr: VoteRepository = Depends(Provide[Container.vote_repo]),
):
    user = require_user(user, "vote")
    chat = await _owned_chat(payload.chat_id, user, resolver, "not_found:vote")
    vote = await vr.upsert_vote(chat.id, payload.message_id, payload.type == "up")
    return VoteDTO.from_model(vote, chat.external_id)
