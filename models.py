# models.py
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Enum, Text, Boolean, Integer, JSON, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    """Storage-assigned identifier: 32 hex chars, never contains a hyphen."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Naive UTC; SQLite does not keep tzinfo.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserType(enum.Enum):
    GUEST = "guest"
    REGULAR = "regular"


class Visibility(enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class DocumentKind(enum.Enum):
    TEXT = "text"
    CODE = "code"
    IMAGE = "image"
    SHEET = "sheet"


class User(Base):
    __tablename__ = "users"
    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(256), nullable=True)  # bcrypt hash, None for guests
    type = Column(Enum(UserType), nullable=False, default=UserType.REGULAR)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Chat(Base):
    __tablename__ = "chats"
    id = Column(String(32), primary_key=True, default=new_id)
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    visibility = Column(Enum(Visibility), nullable=False, default=Visibility.PRIVATE)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_context = Column(JSON, nullable=True)


class Message(Base):
    __tablename__ = "messages"
    id = Column(String(32), primary_key=True, default=new_id)
    chat_id = Column(String(32), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(16), nullable=False)
    parts = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("chat_id", "message_id", name="uq_vote_chat_message"),)
    id = Column(String(32), primary_key=True, default=new_id)
    chat_id = Column(String(32), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    message_id = Column(String(32), nullable=False)
    is_upvoted = Column(Boolean, nullable=False)


class Document(Base):
    """One row per revision; revisions share external_id."""
    __tablename__ = "documents"
    id = Column(String(32), primary_key=True, default=new_id)
    external_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    kind = Column(Enum(DocumentKind), nullable=False, default=DocumentKind.TEXT)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Suggestion(Base):
    __tablename__ = "suggestions"
    id = Column(String(32), primary_key=True, default=new_id)
    document_id = Column(String(32), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    original_text = Column(Text, nullable=False)
    suggested_text = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Stream(Base):
    __tablename__ = "streams"
    id = Column(String(32), primary_key=True, default=new_id)
    chat_id = Column(String(32), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class File(Base):
    __tablename__ = "files"
    id = Column(String(32), primary_key=True, default=new_id)
    storage_id = Column(String(32), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Subscriber(Base):
    __tablename__ = "subscribers"
    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    token = Column(String(64), nullable=False, index=True)
    confirmed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
