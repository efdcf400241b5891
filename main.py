# main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from containers import container
from db import init_db
from errors import ChatError

from endpoints.api_auth import router as api_auth_router
from endpoints.api_chat import router as api_chat_router
from endpoints.api_documents import router as api_documents_router
from endpoints.api_files import router as api_files_router
from endpoints.api_history import router as api_history_router
from endpoints.api_newsletter import router as api_newsletter_router
from endpoints.api_suggestions import router as api_suggestions_router
from endpoints.api_votes import router as api_votes_router

import endpoints.api_auth as api_auth_module
import endpoints.api_chat as api_chat_module
import endpoints.api_documents as api_documents_module
import endpoints.api_files as api_files_module
import endpoints.api_history as api_history_module
import endpoints.api_newsletter as api_newsletter_module
import endpoints.api_suggestions as api_suggestions_module
import endpoints.api_votes as api_votes_module
import endpoints.utils as utils_module

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = container.settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    await init_db(container.engine())
    log.info("Chat backend started (database %s)", settings.database_url)
    yield
    # let running generations persist their messages
    await container.generation_tasks().drain()
    await container.engine().dispose()


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="AI Chat Backend", lifespan=lifespan)

# @inject only works in wired modules.
container.wire(modules=[
    utils_module,
    api_auth_module,
    api_chat_module,
    api_documents_module,
    api_files_module,
    api_history_module,
    api_newsletter_module,
    api_suggestions_module,
    api_votes_module,
])

app.include_router(api_auth_router)
app.include_router(api_chat_router)
app.include_router(api_documents_router)
app.include_router(api_files_router)
app.include_router(api_history_router)
app.include_router(api_newsletter_router)
app.include_router(api_suggestions_router)
app.include_router(api_votes_router)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return exc.to_response()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    log.debug("Rejected request to %s: %s", request.url.path, exc.errors())
    return ChatError("bad_request:api").to_response()


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=False)
