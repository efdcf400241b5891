from datetime import datetime, timedelta
from types import SimpleNamespace

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from services.message_normalizer import to_model_messages, to_ui_messages

T0 = datetime(2024, 5, 1, 12, 0, 0)


def row(id, role, parts, seconds, attachments=None):
    return SimpleNamespace(
        id=id, chat_id="internal", role=role, parts=parts,
        attachments=attachments, created_at=T0 + timedelta(seconds=seconds),
    )


def test_rows_are_ordered_and_carry_external_chat_id():
    rows = [
        row("m2", "assistant", [{"type": "text", "text": "hi"}], 5),
        row("m1", "user", [{"type": "text", "text": "hello"}], 1),
    ]

    messages = to_ui_messages(rows, "b3e1-4d2a")

    assert [m["id"] for m in messages] == ["m1", "m2"]
    assert {m["chatId"] for m in messages} == {"b3e1-4d2a"}
    assert messages[0]["createdAt"] == T0 + timedelta(seconds=1)


def test_missing_parts_and_attachments_become_empty_lists():
    messages = to_ui_messages([row("m1", "user", None, 0)], "c")
    assert messages[0]["parts"] == []
    assert messages[0]["attachments"] == []


def test_model_messages_replay_tool_calls():
    ui = [
        {"role": "user", "parts": [{"type": "text", "text": "Write an essay"}]},
        {"role": "assistant", "parts": [
            {"type": "text", "text": "Sure."},
            {
                "type": "tool-createDocument",
                "toolCallId": "call_1",
                "state": "output-available",
                "input": {"title": "Essay", "kind": "text"},
                "output": {"id": "doc-1"},
            },
            {"type": "text", "text": "Done!"},
        ]},
    ]

    messages = to_model_messages(ui)

    assert isinstance(messages[0], HumanMessage)
    assert messages[0].content == "Write an essay"
    assert isinstance(messages[1], AIMessage)
    assert messages[1].tool_calls[0]["name"] == "createDocument"
    assert isinstance(messages[2], ToolMessage)
    assert messages[2].tool_call_id == "call_1"
    assert messages[3].content == "Done!"


def test_image_parts_become_content_blocks():
    ui = [{"role": "user", "parts": [
        {"type": "text", "text": "What is this?"},
        {"type": "file", "mediaType": "image/png", "name": "a.png", "url": "http://x/a.png"},
    ]}]

    content = to_model_messages(ui)[0].content

    assert content[0] == {"type": "text", "text": "What is this?"}
    assert content[1]["image_url"]["url"] == "http://x/a.png"
