# services/message_normalizer.py
import json
from typing import Iterable, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from models import Message

TOOL_PART_PREFIX = "tool-"


def to_ui_messages(rows: Iterable[Message], external_chat_id: str) -> List[dict]:
    """
    Stored rows -> UI messages, oldest first, carrying the external chat id.
    Missing parts/attachments become empty lists.
    """
    ordered = sorted(rows, key=lambda m: m.created_at)
    return [
        {
            "id": m.id,
            "chatId": external_chat_id,
            "role": m.role,
            "parts": list(m.parts or []),
            "attachments": list(m.attachments or []),
            "createdAt": m.created_at,
        }
        for m in ordered
    ]


def _user_content(parts: list):
    blocks = []
    for part in parts:
        if part.get("type") == "text":
            blocks.append({"type": "text", "text": part.get("text", "")})
        elif part.get("type") == "file" and str(part.get("mediaType", "")).startswith("image/"):
            blocks.append({"type": "image_url", "image_url": {"url": part.get("url")}})
    if all(b["type"] == "text" for b in blocks):
        return "".join(b["text"] for b in blocks)
    return blocks


def _assistant_messages(parts: list) -> List[BaseMessage]:
    result: List[BaseMessage] = []
    text = []
    for part in parts:
        part_type = part.get("type", "")
        if part_type == "text":
            text.append(part.get("text", ""))
        elif part_type.startswith(TOOL_PART_PREFIX) and part.get("state") == "output-available":
            call_id = part.get("toolCallId")
            result.append(AIMessage(
                content="".join(text),
                tool_calls=[{
                    "name": part_type[len(TOOL_PART_PREFIX):],
                    "args": part.get("input") or {},
                    "id": call_id,
                }],
            ))
            result.append(ToolMessage(content=json.dumps(part.get("output")), tool_call_id=call_id))
            text = []
    if text:
        result.append(AIMessage(content="".join(text)))
    return result


def to_model_messages(ui_messages: Iterable[dict]) -> List[BaseMessage]:
    """UI messages -> LangChain messages for the chat model."""
    messages: List[BaseMessage] = []
    for ui in ui_messages:
        parts = ui.get("parts") or []
        role = ui.get("role")
        if role == "user":
            messages.append(HumanMessage(content=_user_content(parts)))
        elif role == "assistant":
            messages.extend(_assistant_messages(parts))
        elif role == "system":
            messages.append(SystemMessage(content="".join(p.get("text", "") for p in parts if p.get("type") == "text")))
    return messages
