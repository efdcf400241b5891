import json
from typing import Any, Dict, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult

USAGE = {"input_tokens": 12, "output_tokens": 5, "total_tokens": 17}


def text_chunks(text: str, size: int = 4) -> List[AIMessageChunk]:
    pieces = [text[i:i + size] for i in range(0, len(text), size)]
    chunks = [AIMessageChunk(content=p) for p in pieces]
    if chunks:
        chunks[-1] = AIMessageChunk(content=pieces[-1], usage_metadata=USAGE)
    return chunks


def tool_call_chunk(name: str, args: dict, call_id: str = "call_1") -> AIMessageChunk:
    return AIMessageChunk(
        content="",
        tool_call_chunks=[{"name": name, "args": json.dumps(args), "id": call_id, "index": 0}],
        usage_metadata=USAGE,
    )


class FakeChatModel(BaseChatModel):
    """
    Scripted chat model. Each astream() call plays the next script;
    when scripts run out it streams default_text. ainvoke() answers
    with title.
    """

    scripts: List[List[AIMessageChunk]] = []
    default_text: str = "Hello there, this is a fake answer."
    title: str = "Fake title"
    error: Optional[str] = None
    calls: int = 0
    seen: List[Any] = []

    @property
    def _llm_type(self) -> str:
        return "fake-chat"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        if self.error:
            raise RuntimeError(self.error)
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=self.title))])

    async def _astream(self, messages, stop=None, run_manager=None, **kwargs):
        self.seen.append(list(messages))
        if self.error:
            raise RuntimeError(self.error)
        index = self.calls
        self.calls += 1
        chunks = self.scripts[index] if index < len(self.scripts) else text_chunks(self.default_text)
        for chunk in chunks:
            yield ChatGenerationChunk(message=chunk)

    def bind_tools(self, tools, **kwargs):
        return self


class FakeModelProvider:
    def __init__(self, models: Optional[Dict[str, FakeChatModel]] = None):
        self.models = models or {}

    def language_model(self, model_id: str) -> FakeChatModel:
        if model_id not in self.models:
            self.models[model_id] = FakeChatModel()
        return self.models[model_id]

    def model_name(self, model_id: str) -> str:
        return f"fake-{model_id}"


class NullCatalog:
    async def get(self):
        return None


def parse_sse(body: str) -> List[Any]:
    """data: lines of an SSE body; JSON payloads decoded, [DONE] kept as a string."""
    events = []
    for line in body.splitlines():
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events
