# services/chat_service.py
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool

from config import Settings
from dtos import ChatMessageDTO, ChatRequestDTO
from errors import ChatError
from models import Chat, UserType, Visibility, new_id, utcnow
from repositories.chat_repo import ChatRepository
from repositories.message_repo import MessageRepository
from repositories.stream_repo import StreamRepository
from .artifacts import chunk_text
from .entitlements import EntitlementGate
from .identifiers import IdentifierResolver
from .message_normalizer import TOOL_PART_PREFIX, to_model_messages, to_ui_messages
from .prompts import TITLE_PROMPT, RequestHints, system_prompt
from .providers import ModelProvider
from .resumable_stream import ResumableStreamContext
from .streaming import ChatLocks, GenerationTasks, StreamBuffer, WordSmoother
from .tools import ToolFactory
from .usage import ModelCatalog, add_usage, enrich_usage, normalize_usage

log = logging.getLogger(__name__)

MAX_STEPS = 5
DEFAULT_TITLE = "New chat"
MAX_TITLE_LENGTH = 80
ERROR_TEXT = "Oops, an error occurred!"
RESUME_WINDOW_SECONDS = 15


@dataclass
class Generation:
    """What one assistant turn produced so far."""
    chat: Chat
    message_id: str = field(default_factory=new_id)
    parts: List[dict] = field(default_factory=list)
    usage: Optional[dict] = None


class ChatService:
    """
    Runs a chat turn: quota check, chat resolution or creation, history,
    persistence of the user message, then model generation in a background
    task that writes UI events into a resumable stream buffer.
    """

    def __init__(
            self,
            settings: Settings,
            chat_repo: ChatRepository,
            message_repo: MessageRepository,
            stream_repo: StreamRepository,
            chat_resolver: IdentifierResolver,
            entitlements: EntitlementGate,
            model_provider: ModelProvider,
            tool_factory: ToolFactory,
            model_catalog: ModelCatalog,
            stream_context: ResumableStreamContext,
            chat_locks: ChatLocks,
            generation_tasks: GenerationTasks,
    ):
        self.settings = settings
        self.chat_repo = chat_repo
        self.message_repo = message_repo
        self.stream_repo = stream_repo
        self.chat_resolver = chat_resolver
        self.entitlements = entitlements
        self.model_provider = model_provider
        self.tool_factory = tool_factory
        self.model_catalog = model_catalog
        self.stream_context = stream_context
        self.chat_locks = chat_locks
        self.generation_tasks = generation_tasks

    # ------------------------------------------------------------------
    # Chat turn
    # ------------------------------------------------------------------

    async def start_chat(
            self,
            request: ChatRequestDTO,
            user_id: str,
            user_type: UserType,
            hints: RequestHints,
            correlation_id: str,
    ) -> StreamBuffer:
        """
        Prepares the turn and starts generation. Returns the buffer the
        response streams from; generation keeps running if the client leaves.
        """
        await self.entitlements.check(user_id, user_type, request.selected_chat_model)

        # lock on the external id even when the client sent the internal one
        existing = await self.chat_resolver.resolve_record(request.id)
        lock_key = existing.external_id if existing is not None else request.id

        async with self.chat_locks.hold(lock_key):
            chat = await self.chat_resolver.resolve_record(request.id)
            if chat is not None:
                if chat.user_id != user_id:
                    raise ChatError("forbidden:chat")
            else:
                visibility = Visibility(request.selected_visibility_type)
                if visibility == Visibility.PUBLIC and not self.settings.flags.share_conversations:
                    raise ChatError("forbidden:feature", "Conversation sharing is disabled.")
                title = await self.generate_title(request.message)
                chat = await self.chat_repo.create_chat(
                    external_id=request.id,
                    user_id=user_id,
                    title=title,
                    visibility=visibility,
                )
                if chat.user_id != user_id:
                    raise ChatError("forbidden:chat")

            ui_messages = await self.load_history(chat.external_id, chat)
            ui_messages.append(self._incoming_ui_message(request, chat.external_id))

            await self.message_repo.add_message(
                chat_id=chat.id,
                role="user",
                parts=ui_messages[-1]["parts"],
                attachments=[],
            )
            stream = await self.stream_repo.create_stream(chat.id)

        buffer = self.stream_context.create_stream(stream.id)
        generation = Generation(chat=chat)
        self.generation_tasks.spawn(
            self._generate(generation, ui_messages, request.selected_chat_model, hints, user_id, buffer, correlation_id),
            name=f"chat-{request.id}",
        )
        return buffer

    async def generate_title(self, message: ChatMessageDTO) -> str:
        text = " ".join(part.text for part in message.parts if part.type == "text")
        if not text.strip():
            return DEFAULT_TITLE
        model = self.model_provider.language_model("title-model")
        try:
            result = await model.ainvoke([SystemMessage(content=TITLE_PROMPT), HumanMessage(content=text)])
        except Exception as e:
            log.warning("Title generation failed, using default title: %s", e)
            return DEFAULT_TITLE
        title = chunk_text(result).strip().strip('"').strip()
        return title[:MAX_TITLE_LENGTH] or DEFAULT_TITLE

    async def load_history(self, external_id: str, chat: Chat) -> List[dict]:
        rows = await self.message_repo.get_messages_by_external_chat_id(external_id)
        if not rows:
            rows = await self.message_repo.get_messages_for_chat(chat.id)
        return to_ui_messages(rows, external_id)

    @staticmethod
    def _incoming_ui_message(request: ChatRequestDTO, chat_external_id: str) -> dict:
        return {
            "id": request.message.id,
            "chatId": chat_external_id,
            "role": "user",
            "parts": [part.model_dump(by_alias=True) for part in request.message.parts],
            "attachments": [],
            "createdAt": utcnow(),
        }

    # ------------------------------------------------------------------
    # Generation (background)
    # ------------------------------------------------------------------

    async def _generate(
            self,
            generation: Generation,
            ui_messages: List[dict],
            selected_chat_model: str,
            hints: RequestHints,
            user_id: str,
            buffer: StreamBuffer,
            correlation_id: str,
    ) -> None:
        try:
            async with asyncio.timeout(self.settings.max_duration_seconds):
                await self._run_model(generation, ui_messages, selected_chat_model, hints, user_id, buffer)
        except Exception as e:
            log.error("Generation failed for chat %s [%s]: %s", generation.chat.external_id, correlation_id, e,
                      exc_info=True)
            buffer.write({"type": "error", "errorText": ERROR_TEXT})
        finally:
            await self._persist(generation, correlation_id)
            buffer.close()

    async def _run_model(
            self,
            generation: Generation,
            ui_messages: List[dict],
            selected_chat_model: str,
            hints: RequestHints,
            user_id: str,
            buffer: StreamBuffer,
    ) -> None:
        model = self.model_provider.language_model(selected_chat_model)
        tools = self.tool_factory.build(user_id, buffer, selected_chat_model)
        tools_by_name = {tool.name: tool for tool in tools}
        runnable = model.bind_tools(tools) if tools else model

        messages: List[BaseMessage] = [SystemMessage(content=system_prompt(selected_chat_model, hints))]
        messages.extend(to_model_messages(ui_messages))

        buffer.write({"type": "start", "messageId": generation.message_id})
        total_usage = None
        for _ in range(MAX_STEPS):
            buffer.write({"type": "start-step"})
            response = await self._stream_step(runnable, messages, generation, buffer)
            total_usage = add_usage(total_usage, response.usage_metadata if response is not None else None)
            tool_calls = response.tool_calls if response is not None else []
            if not tool_calls:
                buffer.write({"type": "finish-step"})
                break

            messages.append(AIMessage(content=chunk_text(response), tool_calls=tool_calls))
            for call in tool_calls:
                buffer.write({
                    "type": "tool-input-available",
                    "toolCallId": call["id"],
                    "toolName": call["name"],
                    "input": call["args"],
                })
                output = await self._invoke_tool(tools_by_name, call)
                buffer.write({"type": "tool-output-available", "toolCallId": call["id"], "output": output})
                generation.parts.append({
                    "type": f"{TOOL_PART_PREFIX}{call['name']}",
                    "toolCallId": call["id"],
                    "state": "output-available",
                    "input": call["args"],
                    "output": output,
                })
                messages.append(ToolMessage(content=json.dumps(output, default=str), tool_call_id=call["id"]))
            buffer.write({"type": "finish-step"})

        model_id = f"{self.settings.model_catalog_provider}/{self.model_provider.model_name(selected_chat_model)}"
        generation.usage = await enrich_usage(self.model_catalog, model_id, normalize_usage(total_usage))
        buffer.write({"type": "data-usage", "data": generation.usage})
        buffer.write({"type": "finish"})

    async def _stream_step(self, runnable, messages: List[BaseMessage], generation: Generation, buffer: StreamBuffer):
        """One model call; text deltas are re-chunked into whole words."""
        response = None
        smoother = WordSmoother()
        text_id = reasoning_id = None
        text, reasoning = [], []

        async for chunk in runnable.astream(messages):
            response = chunk if response is None else response + chunk

            reasoning_delta = chunk.additional_kwargs.get("reasoning_content")
            if reasoning_delta:
                if reasoning_id is None:
                    reasoning_id = new_id()
                    buffer.write({"type": "reasoning-start", "id": reasoning_id})
                buffer.write({"type": "reasoning-delta", "id": reasoning_id, "delta": reasoning_delta})
                reasoning.append(reasoning_delta)

            text_delta = chunk_text(chunk)
            if text_delta:
                if text_id is None:
                    text_id = new_id()
                    buffer.write({"type": "text-start", "id": text_id})
                for word in smoother.push(text_delta):
                    buffer.write({"type": "text-delta", "id": text_id, "delta": word})
                text.append(text_delta)

        if reasoning_id is not None:
            buffer.write({"type": "reasoning-end", "id": reasoning_id})
            generation.parts.append({"type": "reasoning", "text": "".join(reasoning)})
        if text_id is not None:
            rest = smoother.flush()
            if rest:
                buffer.write({"type": "text-delta", "id": text_id, "delta": rest})
            buffer.write({"type": "text-end", "id": text_id})
            generation.parts.append({"type": "text", "text": "".join(text)})
        return response

    @staticmethod
    async def _invoke_tool(tools_by_name: dict, call: dict):
        tool: Optional[BaseTool] = tools_by_name.get(call["name"])
        if tool is None:
            return {"error": f"Unknown tool: {call['name']}"}
        try:
            return await tool.ainvoke(call["args"])
        except ChatError:
            raise
        except Exception as e:
            # reported back to the model as the tool result
            log.warning("Tool %s failed: %s", call["name"], e)
            return {"error": str(e)}

    async def _persist(self, generation: Generation, correlation_id: str) -> None:
        chat = generation.chat
        if generation.parts:
            try:
                await self.message_repo.add_message(
                    chat_id=chat.id,
                    role="assistant",
                    parts=generation.parts,
                    attachments=[],
                    message_id=generation.message_id,
                )
            except Exception as e:
                log.error("Unable to save assistant message for chat %s [%s]: %s",
                          chat.external_id, correlation_id, e)
        if generation.usage:
            try:
                await self.chat_repo.update_last_context(chat.id, generation.usage)
            except Exception as e:
                log.warning("Unable to persist last usage for chat %s: %s", chat.external_id, e)

    # ------------------------------------------------------------------
    # Resumption
    # ------------------------------------------------------------------

    async def resume(self, identifier: str, user_id: str) -> Optional[AsyncIterator[dict]]:
        """
        Events for a reconnecting client: the live or cached generation if
        there is one, otherwise a single catch-up event for an assistant
        message finished in the last few seconds. None means nothing to resume.
        """
        requested_at = utcnow()
        chat = await self.chat_resolver.resolve_record(identifier)
        if chat is None:
            raise ChatError("not_found:chat")
        if chat.visibility == Visibility.PRIVATE and chat.user_id != user_id:
            raise ChatError("forbidden:chat")

        streams = await self.stream_repo.get_streams_for_chat(chat.id)
        if not streams:
            raise ChatError("not_found:stream")

        events = self.stream_context.resume_stream(streams[-1].id)
        if events is not None:
            return events

        messages = await self.message_repo.get_messages_for_chat(chat.id)
        if not messages:
            messages = await self.message_repo.get_messages_by_external_chat_id(identifier)
        ui_messages = to_ui_messages(messages, identifier)
        if not ui_messages:
            return None
        latest = ui_messages[-1]
        if latest["role"] != "assistant":
            return None
        if (requested_at - latest["createdAt"]).total_seconds() > RESUME_WINDOW_SECONDS:
            return None
        return _single_event({
            "type": "data-appendMessage",
            "data": json.dumps({**latest, "createdAt": latest["createdAt"].isoformat()}),
            "transient": True,
        })

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_chat(self, identifier: str, user_id: str) -> str:
        chat = await self.chat_resolver.resolve_record(identifier)
        if chat is None:
            raise ChatError("not_found:chat")
        if chat.user_id != user_id:
            raise ChatError("forbidden:chat")
        await self.chat_repo.delete_chat(chat.id)
        log.info("Deleted chat %s", chat.external_id)
        return identifier


async def _single_event(event: dict) -> AsyncIterator[dict]:
    yield event
