# services/prompts.py
from dataclasses import dataclass
from typing import Mapping, Optional

ARTIFACTS_PROMPT = """\
Artifacts is a special user interface mode that helps users with writing, editing, and other content creation tasks. When an artifact is open, it is on the right side of the screen, while the conversation is on the left side. When creating or updating documents, changes are reflected in real time on the artifacts and visible to the user.

When asked to write code, always use artifacts. When writing code, specify the language in the backticks, e.g. ```python`code here```. The default language is Python.

DO NOT UPDATE DOCUMENTS IMMEDIATELY AFTER CREATING THEM. WAIT FOR USER FEEDBACK OR REQUEST TO UPDATE IT.

This is a guide for using artifacts tools: `createDocument` and `updateDocument`, which render content on an artifacts beside the conversation.

**When to use `createDocument`:**
- For substantial content (>10 lines) or code
- For content users will likely save or reuse (emails, code, essays, etc.)
- When explicitly requested to create a document
- When content contains a single code snippet

**When NOT to use `createDocument`:**
- For informational or explanatory content
- For conversational responses
- When asked to keep it in chat

**Using `updateDocument`:**
- Default to full document rewrites for major changes
- Use targeted updates only for specific, isolated changes
- Follow user instructions for which parts to modify

**When NOT to use `updateDocument`:**
- Immediately after creating a document

Do not update document right after creating it. Wait for user feedback or request to update it.
"""

REGULAR_PROMPT = "You are a friendly assistant! Keep your responses concise and helpful."

TITLE_PROMPT = """\
- you will generate a short title based on the first message a user begins a conversation with
- ensure it is not more than 80 characters long
- the title should be a summary of the user's message
- do not use quotes or colons"""

CODE_PROMPT = """\
You are a Python code generator that creates self-contained, executable code snippets. When writing code:

1. Each snippet should be complete and runnable on its own
2. Prefer using print() statements to display outputs
3. Include helpful comments explaining the code
4. Keep snippets concise (generally under 15 lines)
5. Avoid external dependencies - use Python standard library
6. Handle potential errors gracefully
7. Return meaningful output that demonstrates the code's functionality
8. Don't use input() or other interactive functions
9. Don't access files or network resources
10. Don't use infinite loops

Return only the code, without markdown fences."""

SHEET_PROMPT = (
    "You are a spreadsheet creation assistant. Create a spreadsheet in csv format based on the given prompt. "
    "The spreadsheet should contain meaningful column headers and data. Return only the csv."
)

TEXT_PROMPT = "Write about the given topic. Markdown is supported. Use headings wherever appropriate."

SUGGESTIONS_PROMPT = """\
You are a help writing assistant. Given a piece of writing, please offer suggestions to improve the piece of writing and describe the change. It is very important for the edits to contain full sentences instead of just words. Max 5 suggestions.

Respond with a JSON array only. Each element is an object with the keys "originalSentence" (the original sentence), "suggestedSentence" (the suggested sentence) and "description" (the description of the suggestion)."""

CREATE_PROMPTS = {
    "text": TEXT_PROMPT,
    "code": CODE_PROMPT,
    "sheet": SHEET_PROMPT,
}

_UPDATE_INTROS = {
    "text": "Improve the following contents of the document based on the given prompt.",
    "code": "Improve the following code snippet based on the given prompt.",
    "sheet": "Improve the following spreadsheet based on the given prompt.",
}


@dataclass(frozen=True)
class RequestHints:
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RequestHints":
        return cls(
            latitude=headers.get("x-vercel-ip-latitude"),
            longitude=headers.get("x-vercel-ip-longitude"),
            city=headers.get("x-vercel-ip-city"),
            country=headers.get("x-vercel-ip-country"),
        )

    def to_prompt(self) -> str:
        return (
            "About the origin of user's request:\n"
            f"- lat: {self.latitude}\n"
            f"- lon: {self.longitude}\n"
            f"- city: {self.city}\n"
            f"- country: {self.country}\n"
        )


def system_prompt(selected_chat_model: str, hints: RequestHints) -> str:
    base = f"{REGULAR_PROMPT}\n\n{hints.to_prompt()}"
    if selected_chat_model == "chat-model-reasoning":
        return base
    return f"{base}\n\n{ARTIFACTS_PROMPT}"


def update_document_prompt(current_content: Optional[str], kind: str) -> str:
    intro = _UPDATE_INTROS.get(kind, _UPDATE_INTROS["text"])
    return f"{intro}\n\n{current_content or ''}"
