# errors.py
import logging
from typing import Optional

from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)

STATUS_BY_TYPE = {
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "rate_limit": 429,
    "offline": 503,
}

# Surfaces whose errors are logged server-side instead of shown to the user.
LOGGED_SURFACES = {"database"}

GENERIC_MESSAGE = "Something went wrong. Please try again later."

BILLING_ERROR_MARKER = "AI Gateway requires a valid credit card on file to service requests"

MESSAGES = {
    "bad_request:api": "The request couldn't be processed. Please check your input and try again.",
    "bad_request:activate_gateway": (
        "AI Gateway requires a valid credit card on file to service requests. "
        "Please activate billing for your account and try again."
    ),
    "bad_request:document": "The request to create or update the document was invalid. Please check your input and try again.",
    "unauthorized:auth": "You need to sign in before continuing.",
    "forbidden:auth": "Your account does not have access to this feature.",
    "forbidden:feature": "This feature is currently disabled.",
    "rate_limit:chat": "You have exceeded your maximum number of messages for the day. Please try again later.",
    "not_found:chat": "The requested chat was not found. Please check the chat ID and try again.",
    "forbidden:chat": "This chat belongs to another user. Please check the chat ID and try again.",
    "unauthorized:chat": "You need to sign in to view this chat. Please sign in and try again.",
    "offline:chat": "We're having trouble sending your message. Please check your internet connection and try again.",
    "not_found:stream": "No stream was found for this chat.",
    "not_found:document": "The requested document was not found. Please check the document ID and try again.",
    "forbidden:document": "This document belongs to another user. Please check the document ID and try again.",
    "unauthorized:document": "You need to sign in to view this document. Please sign in and try again.",
    "unauthorized:vote": "You need to sign in to vote. Please sign in and try again.",
    "not_found:vote": "The chat you are voting in was not found.",
    "forbidden:vote": "You can only vote on messages in your own chats.",
    "unauthorized:suggestions": "You need to sign in to view suggestions. Please sign in and try again.",
    "unauthorized:upload": "You need to sign in to upload files.",
    "forbidden:api": "You do not have access to this resource.",
}


class ChatError(Exception):
    """
    Domain error with a stable "<type>:<surface>" code.
    Raised close to where the problem is detected and turned into
    a JSON response at the route boundary.
    """

    def __init__(self, code: str, cause: Optional[str] = None):
        error_type, _, surface = code.partition(":")
        self.code = code
        self.type = error_type
        self.surface = surface
        self.cause = cause
        self.message = MESSAGES.get(code, GENERIC_MESSAGE)
        self.status_code = STATUS_BY_TYPE.get(error_type, 500)
        super().__init__(self.message)

    def to_payload(self) -> dict:
        if self.surface in LOGGED_SURFACES:
            log.error("%s: %s (%s)", self.code, self.message, self.cause)
            return {"code": "", "message": GENERIC_MESSAGE}
        payload = {"code": self.code, "message": self.message}
        if self.cause:
            payload["cause"] = self.cause
        return payload

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.to_payload(), status_code=self.status_code)


def is_billing_error(exc: BaseException) -> bool:
    return BILLING_ERROR_MARKER in str(exc)
