from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from errors import ChatError
from models import UserType
from services.entitlements import ENTITLEMENTS_BY_USER_TYPE, EntitlementGate


def make_gate(per_chat_counts):
    chat_repo = AsyncMock()
    chat_repo.list_chats_for_user.return_value = [SimpleNamespace(id=f"chat{i}") for i in range(len(per_chat_counts))]
    message_repo = AsyncMock()
    message_repo.count_user_messages_since.side_effect = list(per_chat_counts)
    return EntitlementGate(chat_repo, message_repo), message_repo


async def test_counts_across_every_chat():
    gate, message_repo = make_gate([3, 0, 4])

    assert await gate.count_recent_user_messages("u1") == 7
    assert message_repo.count_user_messages_since.await_count == 3


@pytest.mark.parametrize("user_type", [UserType.GUEST, UserType.REGULAR])
async def test_user_at_the_limit_is_rejected(user_type):
    limit = ENTITLEMENTS_BY_USER_TYPE[user_type].max_messages_per_day
    gate, _ = make_gate([limit - 1, 1])

    with pytest.raises(ChatError) as exc:
        await gate.check("u1", user_type, "chat-model")
    assert exc.value.code == "rate_limit:chat"
    assert exc.value.status_code == 429


@pytest.mark.parametrize("user_type", [UserType.GUEST, UserType.REGULAR])
async def test_user_one_below_the_limit_is_accepted(user_type):
    limit = ENTITLEMENTS_BY_USER_TYPE[user_type].max_messages_per_day
    gate, _ = make_gate([limit - 1])

    await gate.check("u1", user_type, "chat-model")


def test_daily_limits():
    assert ENTITLEMENTS_BY_USER_TYPE[UserType.GUEST].max_messages_per_day == 20
    assert ENTITLEMENTS_BY_USER_TYPE[UserType.REGULAR].max_messages_per_day == 100
