# services/entitlements.py
from dataclasses import dataclass
from datetime import timedelta

from errors import ChatError
from models import UserType, utcnow
from repositories.chat_repo import ChatRepository
from repositories.message_repo import MessageRepository

LOOKBACK = timedelta(hours=24)


@dataclass(frozen=True)
class Entitlements:
    max_messages_per_day: int
    available_chat_model_ids: tuple


ENTITLEMENTS_BY_USER_TYPE = {
    UserType.GUEST: Entitlements(
        max_messages_per_day=20,
        available_chat_model_ids=("chat-model", "chat-model-reasoning"),
    ),
    UserType.REGULAR: Entitlements(
        max_messages_per_day=100,
        available_chat_model_ids=("chat-model", "chat-model-reasoning"),
    ),
}


class EntitlementGate:
    def __init__(self, chat_repo: ChatRepository, message_repo: MessageRepository):
        self.chat_repo = chat_repo
        self.message_repo = message_repo

    async def count_recent_user_messages(self, user_id: str, lookback: timedelta = LOOKBACK) -> int:
        # No cross-chat index: walk every chat the user owns.
        since = utcnow() - lookback
        total = 0
        for chat in await self.chat_repo.list_chats_for_user(user_id):
            total += await self.message_repo.count_user_messages_since(chat.id, since)
        return total

    async def check(self, user_id: str, user_type: UserType, selected_model: str = None) -> None:
        entitlements = ENTITLEMENTS_BY_USER_TYPE[user_type]
        if selected_model and selected_model not in entitlements.available_chat_model_ids:
            raise ChatError("forbidden:chat", f"Model {selected_model} is not available for this account")
        count = await self.count_recent_user_messages(user_id)
        if count >= entitlements.max_messages_per_day:
            raise ChatError("rate_limit:chat")
