# endpoints/api_chat.py
import logging
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query, Request, Response
from sse_starlette.sse import EventSourceResponse

from config import Settings
from containers import Container
from dtos import ChatDetailDTO, ChatDTO, ChatRequestDTO, MessageDTO, VisibilityUpdateDTO
from errors import ChatError, is_billing_error
from models import Visibility
from repositories.chat_repo import ChatRepository
from repositories.message_repo import MessageRepository
from repositories.base import InvalidIdentifierError
from services.auth_service import SessionUser
from services.chat_service import ChatService
from services.identifiers import IdentifierResolver
from services.prompts import RequestHints
from services.resumable_stream import ResumableStreamContext
from services.streaming import sse_frames
from .utils import get_correlation_id, get_current_user, require_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/chat")
@inject
async def post_chat(
        request: Request,
        payload: ChatRequestDTO,
        user: Optional[SessionUser] = Depends(get_current_user),
        chat_service: ChatService = Depends(Provide[Container.chat_service]),
):
    user = require_user(user)
    correlation_id = get_correlation_id(request)
    try:
        buffer = await chat_service.start_chat(
            payload,
            user_id=user.id,
            user_type=user.type,
            hints=RequestHints.from_headers(request.headers),
            correlation_id=correlation_id,
        )
    except ChatError:
        raise
    except Exception as e:
        if is_billing_error(e):
            raise ChatError("bad_request:activate_gateway") from e
        log.error("Unhandled error in chat API [%s]: %s", correlation_id, e, exc_info=True)
        raise ChatError("offline:chat") from e

    return EventSourceResponse(sse_frames(buffer.subscribe()))


@router.delete("/chat")
@inject
async def delete_chat(
        id: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        chat_service: ChatService = Depends(Provide[Container.chat_service]),
):
    if not id:
        raise ChatError("bad_request:api")
    user = require_user(user)
    deleted_id = await chat_service.delete_chat(id, user.id)
    return {"id": deleted_id}


@router.patch("/chat/visibility", response_model=ChatDTO)
@inject
async def update_visibility(
        payload: VisibilityUpdateDTO,
        user: Optional[SessionUser] = Depends(get_current_user),
        settings: Settings = Depends(Provide[Container.settings]),
        resolver: IdentifierResolver = Depends(Provide[Container.chat_resolver]),
        cr: ChatRepository = Depends(Provide[Container.chat_repo]),
):
    user = require_user(user)
    chat = await resolver.resolve_record(payload.chat_id)
    if chat is None:
        raise ChatError("not_found:chat")
    if chat.user_id != user.id:
        raise ChatError("forbidden:chat")
    visibility = Visibility(payload.visibility)
    if visibility == Visibility.PUBLIC and not settings.flags.share_conversations:
        raise ChatError("forbidden:feature", "Conversation sharing is disabled.")
    await cr.update_visibility(chat.id, visibility)
    chat.visibility = visibility
    return ChatDTO.from_model(chat)


@router.get("/chat/{chat_id}/stream")
@inject
async def resume_stream(
        chat_id: str,
        user: Optional[SessionUser] = Depends(get_current_user),
        stream_context: ResumableStreamContext = Depends(Provide[Container.stream_context]),
        chat_service: ChatService = Depends(Provide[Container.chat_service]),
):
    if not stream_context.enabled:
        return Response(status_code=204)
    user = require_user(user)
    events = await chat_service.resume(chat_id, user.id)
    if events is None:
        return Response(status_code=200, media_type="text/event-stream")
    return EventSourceResponse(sse_frames(events))


@router.get("/chat/{chat_id}", response_model=ChatDetailDTO)
@inject
async def get_chat(
        chat_id: str,
        user: Optional[SessionUser] = Depends(get_current_user),
        resolver: IdentifierResolver = Depends(Provide[Container.chat_resolver]),
        chat_service: ChatService = Depends(Provide[Container.chat_service]),
):
    chat = await resolver.resolve_record(chat_id)
    if chat is None:
        raise ChatError("not_found:chat")
    is_owner = user is not None and user.id == chat.user_id
    if chat.visibility == Visibility.PRIVATE:
        require_user(user)
        if not is_owner:
            raise ChatError("forbidden:chat")
    messages = await chat_service.load_history(chat.external_id, chat)
    return ChatDetailDTO(
        chat=ChatDTO.from_model(chat),
        messages=[MessageDTO.model_validate(m) for m in messages],
        is_readonly=not is_owner,
    )


@router.delete("/messages/trailing")
@inject
async def delete_trailing_messages(
        id: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        cr: ChatRepository = Depends(Provide[Container.chat_repo]),
        mr: MessageRepository = Depends(Provide[Container.message_repo]),
):
    """Drops every message of the chat newer than the given one (edit/regenerate)."""
    if not id:
        raise ChatError("bad_request:api")
    user = require_user(user)
    try:
        message = await mr.get_by_id(id)
    except InvalidIdentifierError:
        raise ChatError("bad_request:api", "Malformed message id") from None
    if message is None:
        raise ChatError("not_found:chat", "Message not found")
    chat = await cr.get_by_id(message.chat_id)
    if chat is None or chat.user_id != user.id:
        raise ChatError("forbidden:chat")
    await mr.delete_messages_after(chat.id, message.created_at)
    return {"id": id}
