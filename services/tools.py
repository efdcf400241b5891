# services/tools.py
import logging
import uuid
from typing import List, Literal

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field

from config import FeatureFlags
from models import DocumentKind
from repositories.document_repo import DocumentRepository
from repositories.suggestion_repo import SuggestionRepository
from .artifacts import build_handlers, data_event, handler_for
from .identifiers import IdentifierResolver
from .prompts import SUGGESTIONS_PROMPT
from .providers import REASONING_MODEL_ID, ModelProvider
from .streaming import StreamBuffer

log = logging.getLogger(__name__)

WEATHER_URL = "https://api.open-meteo.com/v1/forecast"


class WeatherArgs(BaseModel):
    latitude: float = Field(..., description="Latitude of the location")
    longitude: float = Field(..., description="Longitude of the location")


class CreateDocumentArgs(BaseModel):
    title: str = Field(..., description="The title of the document")
    kind: Literal["text", "code", "sheet"] = Field(..., description="The kind of document to create")


class UpdateDocumentArgs(BaseModel):
    id: str = Field(..., description="The ID of the document to update")
    description: str = Field(..., description="The description of changes that need to be made")


class RequestSuggestionsArgs(BaseModel):
    documentId: str = Field(..., description="The ID of the document to request edits")


async def fetch_weather(latitude: float, longitude: float, timeout: float = 10.0) -> dict:
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m",
        "hourly": "temperature_2m",
        "daily": "sunrise,sunset",
        "timezone": "auto",
    }
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.get(WEATHER_URL, params=params)
        resp.raise_for_status()
        return resp.json()


def _complete_suggestion(element) -> bool:
    return (
        isinstance(element, dict)
        and isinstance(element.get("originalSentence"), str)
        and isinstance(element.get("suggestedSentence"), str)
    )


class ToolFactory:
    """
    Builds the per-request tool set. Tools write their side-effect events
    into the request's stream buffer and persist documents/suggestions
    for the requesting user.
    """

    def __init__(
            self,
            documents: DocumentRepository,
            suggestions: SuggestionRepository,
            document_resolver: IdentifierResolver,
            model_provider: ModelProvider,
            flags: FeatureFlags,
    ):
        self.documents = documents
        self.suggestions = suggestions
        self.document_resolver = document_resolver
        self.model_provider = model_provider
        self.flags = flags

    def _artifact_model(self) -> BaseChatModel:
        return self.model_provider.language_model("artifact-model")

    def build(self, user_id: str, writer: StreamBuffer, selected_chat_model: str) -> List[BaseTool]:
        if selected_chat_model == REASONING_MODEL_ID:
            return []

        handlers = build_handlers(self.documents, self._artifact_model())

        async def create_document(title: str, kind: str) -> dict:
            external_id = str(uuid.uuid4())
            writer.write(data_event("kind", kind))
            writer.write(data_event("id", external_id))
            writer.write(data_event("title", title))
            writer.write(data_event("clear", None))
            handler = handler_for(handlers, DocumentKind(kind))
            if handler is None:
                raise ValueError(f"No document handler found for kind: {kind}")
            await handler.create_document(external_id, title, writer, user_id)
            writer.write(data_event("finish", None))
            return {
                "id": external_id,
                "title": title,
                "kind": kind,
                "content": "A document was created and is now visible to the user.",
            }

        async def update_document(id: str, description: str) -> dict:
            document = await self.document_resolver.resolve_record(id)
            if document is None:
                return {"error": "Document not found"}
            writer.write(data_event("clear", None))
            handler = handler_for(handlers, document.kind)
            if handler is None:
                raise ValueError(f"No document handler found for kind: {document.kind.value}")
            await handler.update_document(document, description, writer, user_id)
            writer.write(data_event("finish", None))
            return {
                "id": id,
                "title": document.title,
                "kind": document.kind.value,
                "content": "The document has been updated successfully.",
            }

        async def request_suggestions(documentId: str) -> dict:
            document = await self.document_resolver.resolve_record(documentId)
            if document is None or not document.content:
                return {"error": "Document not found"}

            collected = []

            def emit(element: dict) -> None:
                suggestion = {
                    "id": str(uuid.uuid4()),
                    "documentId": documentId,
                    "originalText": element["originalSentence"],
                    "suggestedText": element["suggestedSentence"],
                    "description": element.get("description"),
                    "isResolved": False,
                }
                writer.write(data_event("suggestion", suggestion))
                collected.append(suggestion)

            chain = self._artifact_model() | JsonOutputParser()
            messages = [SystemMessage(content=SUGGESTIONS_PROMPT), HumanMessage(content=document.content)]
            emitted = 0
            latest: list = []
            async for partial in chain.astream(messages):
                if not isinstance(partial, list):
                    continue
                latest = partial
                # an element is final once the next one has started
                while emitted < len(latest) - 1:
                    if _complete_suggestion(latest[emitted]):
                        emit(latest[emitted])
                    emitted += 1
            for element in latest[emitted:]:
                if _complete_suggestion(element):
                    emit(element)

            for suggestion in collected:
                await self.suggestions.save_suggestion(
                    document_id=document.id,
                    original_text=suggestion["originalText"],
                    suggested_text=suggestion["suggestedText"],
                    description=suggestion["description"],
                    user_id=user_id,
                )

            return {
                "id": documentId,
                "title": document.title,
                "kind": document.kind.value,
                "message": "Suggestions have been added to the document",
            }

        tools: List[BaseTool] = []
        if self.flags.weather_tool:
            tools.append(StructuredTool.from_function(
                coroutine=fetch_weather,
                name="getWeather",
                description="Get the current weather at a location",
                args_schema=WeatherArgs,
            ))
        tools.extend([
            StructuredTool.from_function(
                coroutine=create_document,
                name="createDocument",
                description=(
                    "Create a document for a writing or content creation activities. "
                    "This tool will call other functions that will generate the contents "
                    "of the document based on the title and kind."
                ),
                args_schema=CreateDocumentArgs,
            ),
            StructuredTool.from_function(
                coroutine=update_document,
                name="updateDocument",
                description="Update a document with the given description.",
                args_schema=UpdateDocumentArgs,
            ),
            StructuredTool.from_function(
                coroutine=request_suggestions,
                name="requestSuggestions",
                description="Request suggestions for a document",
                args_schema=RequestSuggestionsArgs,
            ),
        ])
        return tools
