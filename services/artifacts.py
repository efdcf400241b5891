# services/artifacts.py
import logging
import re
from typing import Dict, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from models import Document, DocumentKind
from repositories.document_repo import DocumentRepository
from .prompts import CREATE_PROMPTS, update_document_prompt
from .streaming import StreamBuffer

log = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[\w+-]*\s*\n?|\n?```\s*$")


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text)


def data_event(kind: str, data, transient: bool = True) -> dict:
    event = {"type": f"data-{kind}", "data": data}
    if transient:
        event["transient"] = True
    return event


def chunk_text(chunk) -> str:
    content = chunk.content
    if isinstance(content, str):
        return content
    return "".join(block.get("text", "") for block in content if isinstance(block, dict))


class DocumentHandler:
    """
    Streams a draft for one document kind into the data stream, then
    saves it as a new revision.

    Text sends each delta; code and sheet send the whole draft so far.
    """

    delta_event = "textDelta"
    cumulative = False

    def __init__(self, kind: DocumentKind, documents: DocumentRepository, model: BaseChatModel):
        self.kind = kind
        self.documents = documents
        self.model = model

    def _clean(self, draft: str) -> str:
        return draft

    async def _stream_draft(self, system: str, prompt: str, writer: StreamBuffer) -> str:
        draft = ""
        async for chunk in self.model.astream([SystemMessage(content=system), HumanMessage(content=prompt)]):
            delta = chunk_text(chunk)
            if not delta:
                continue
            draft += delta
            if self.cumulative:
                writer.write(data_event(self.delta_event, self._clean(draft)))
            else:
                writer.write(data_event(self.delta_event, delta))
        return self._clean(draft)

    async def create_document(self, external_id: str, title: str, writer: StreamBuffer, user_id: str) -> str:
        draft = await self._stream_draft(CREATE_PROMPTS[self.kind.value], title, writer)
        await self.documents.save_document(external_id, title, draft, self.kind, user_id)
        return draft

    async def update_document(self, document: Document, description: str, writer: StreamBuffer, user_id: str) -> str:
        system = update_document_prompt(document.content, self.kind.value)
        draft = await self._stream_draft(system, description, writer)
        await self.documents.save_document(document.external_id, document.title, draft, self.kind, user_id)
        return draft


class TextDocumentHandler(DocumentHandler):
    delta_event = "textDelta"


class CodeDocumentHandler(DocumentHandler):
    delta_event = "codeDelta"
    cumulative = True

    def _clean(self, draft: str) -> str:
        return strip_fences(draft)


class SheetDocumentHandler(DocumentHandler):
    delta_event = "sheetDelta"
    cumulative = True

    def _clean(self, draft: str) -> str:
        return strip_fences(draft).strip("\n")


_HANDLER_CLASSES = {
    DocumentKind.TEXT: TextDocumentHandler,
    DocumentKind.CODE: CodeDocumentHandler,
    DocumentKind.SHEET: SheetDocumentHandler,
}

ARTIFACT_KINDS = tuple(kind.value for kind in _HANDLER_CLASSES)


def build_handlers(documents: DocumentRepository, model: BaseChatModel) -> Dict[DocumentKind, DocumentHandler]:
    return {kind: cls(kind, documents, model) for kind, cls in _HANDLER_CLASSES.items()}


def handler_for(handlers: Dict[DocumentKind, DocumentHandler], kind: DocumentKind) -> Optional[DocumentHandler]:
    handler = handlers.get(kind)
    if handler is None:
        log.warning("No document handler for kind %s", kind)
    return handler
