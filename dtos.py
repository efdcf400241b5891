from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, List, Literal, Optional, Union
from datetime import datetime

from models import Chat, Document, Suggestion, Vote


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ======================
# Input DTOs
# ======================

class TextPartDTO(CamelModel):
    type: Literal["text"]
    text: str = Field(..., min_length=1, max_length=2000)


class FilePartDTO(CamelModel):
    type: Literal["file"]
    media_type: Literal["image/jpeg", "image/png"]
    name: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)


MessagePartDTO = Annotated[Union[TextPartDTO, FilePartDTO], Field(discriminator="type")]


class ChatMessageDTO(CamelModel):
    id: str = Field(..., min_length=1)
    role: Literal["user"]
    parts: List[MessagePartDTO] = Field(..., min_length=1)


class ChatRequestDTO(CamelModel):
    id: str = Field(..., min_length=1)
    message: ChatMessageDTO
    selected_chat_model: Literal["chat-model", "chat-model-reasoning"]
    selected_visibility_type: Literal["public", "private"]


class VisibilityUpdateDTO(CamelModel):
    chat_id: str = Field(..., min_length=1)
    visibility: Literal["public", "private"]


class DocumentSaveDTO(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    kind: Literal["text", "code", "image", "sheet"]


class VotePatchDTO(CamelModel):
    chat_id: str = Field(..., min_length=1)
    message_id: str = Field(..., min_length=1)
    type: Literal["up", "down"]


class VoteCreateDTO(CamelModel):
    chat_id: str = Field(..., min_length=1)
    message_id: str = Field(..., min_length=1)
    is_upvoted: bool


class CredentialsDTO(CamelModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)


class SubscribeDTO(CamelModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")


# ======================
# Output DTOs
# ======================

class ChatDTO(CamelModel):
    id: str
    user_id: str
    title: str
    visibility: str
    created_at: datetime
    last_context: Optional[Any] = None

    @classmethod
    def from_model(cls, chat: Chat) -> "ChatDTO":
        return cls(
            id=chat.external_id or chat.id,
            user_id=chat.user_id,
            title=chat.title or "Untitled Chat",
            visibility=chat.visibility.value,
            created_at=chat.created_at,
            last_context=chat.last_context,
        )


class MessageDTO(CamelModel):
    id: str
    chat_id: str
    role: str
    parts: List[Any] = []
    attachments: List[Any] = []
    created_at: datetime


class ChatDetailDTO(CamelModel):
    chat: ChatDTO
    messages: List[MessageDTO]
    is_readonly: bool


class HistoryDTO(CamelModel):
    chats: List[ChatDTO]
    has_more: bool


class DocumentDTO(CamelModel):
    id: str
    internal_id: str
    title: str
    content: Optional[str] = None
    kind: str
    user_id: str
    created_at: datetime

    @classmethod
    def from_model(cls, document: Document) -> "DocumentDTO":
        return cls(
            id=document.external_id,
            internal_id=document.id,
            title=document.title,
            content=document.content,
            kind=document.kind.value,
            user_id=document.user_id,
            created_at=document.created_at,
        )


class VoteDTO(CamelModel):
    chat_id: str
    message_id: str
    is_upvoted: bool

    @classmethod
    def from_model(cls, vote: Vote, external_chat_id: str) -> "VoteDTO":
        return cls(chat_id=external_chat_id, message_id=vote.message_id, is_upvoted=vote.is_upvoted)


class SuggestionDTO(CamelModel):
    id: str
    document_id: str
    original_text: str
    suggested_text: str
    description: Optional[str] = None
    is_resolved: bool
    user_id: str
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @classmethod
    def from_model(cls, suggestion: Suggestion) -> "SuggestionDTO":
        return cls.model_validate(suggestion)


class UserDTO(CamelModel):
    id: str
    email: str
    type: str
