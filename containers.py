# containers.py
from dependency_injector import containers, providers

from config import Settings
from db import create_engine, create_session_factory
from repositories.chat_repo import ChatRepository
from repositories.document_repo import DocumentRepository
from repositories.file_repo import FileRepository
from repositories.message_repo import MessageRepository
from repositories.stream_repo import StreamRepository
from repositories.subscriber_repo import SubscriberRepository
from repositories.suggestion_repo import SuggestionRepository
from repositories.user_repo import UserRepository
from repositories.vote_repo import VoteRepository
from services.auth_service import AuthService
from services.chat_service import ChatService
from services.entitlements import EntitlementGate
from services.file_storage import FileStorage
from services.identifiers import IdentifierResolver
from services.newsletter_service import NewsletterService
from services.providers import ModelProvider
from services.resumable_stream import ResumableStreamContext
from services.streaming import ChatLocks, GenerationTasks
from services.tools import ToolFactory
from services.usage import ModelCatalog


class Container(containers.DeclarativeContainer):
    """
    Application dependency container.

    Owns the process-wide singletons (engine, model provider, price catalog,
    resumable stream context, per-chat locks); everything else is built per
    injection. Endpoint modules are wired from main.py.
    """

    settings = providers.Singleton(Settings.from_env)

    # --- Database ---

    engine = providers.Singleton(create_engine, database_url=settings.provided.database_url)
    session_factory = providers.Singleton(create_session_factory, engine=engine)

    # --- Repositories ---

    user_repo: providers.Factory[UserRepository] = providers.Factory(
        UserRepository, session_factory=session_factory,
    )
    chat_repo: providers.Factory[ChatRepository] = providers.Factory(
        ChatRepository, session_factory=session_factory,
    )
    message_repo: providers.Factory[MessageRepository] = providers.Factory(
        MessageRepository, session_factory=session_factory,
    )
    vote_repo: providers.Factory[VoteRepository] = providers.Factory(
        VoteRepository, session_factory=session_factory,
    )
    document_repo: providers.Factory[DocumentRepository] = providers.Factory(
        DocumentRepository, session_factory=session_factory,
    )
    suggestion_repo: providers.Factory[SuggestionRepository] = providers.Factory(
        SuggestionRepository, session_factory=session_factory,
    )
    stream_repo: providers.Factory[StreamRepository] = providers.Factory(
        StreamRepository, session_factory=session_factory,
    )
    file_repo: providers.Factory[FileRepository] = providers.Factory(
        FileRepository, session_factory=session_factory,
    )
    subscriber_repo: providers.Factory[SubscriberRepository] = providers.Factory(
        SubscriberRepository, session_factory=session_factory,
    )

    # --- Identifier resolution ---

    chat_resolver = providers.Factory(
        IdentifierResolver,
        by_external_id=chat_repo.provided.get_by_external_id,
        by_internal_id=chat_repo.provided.get_by_id,
    )
    document_resolver = providers.Factory(
        IdentifierResolver,
        by_external_id=document_repo.provided.get_by_external_id,
        by_internal_id=document_repo.provided.get_by_id,
    )

    # --- Process-wide state ---

    model_provider = providers.Singleton(ModelProvider, settings=settings)
    model_catalog = providers.Singleton(
        ModelCatalog,
        url=settings.provided.model_catalog_url,
        ttl_seconds=settings.provided.model_catalog_ttl_seconds,
    )
    stream_context = providers.Singleton(
        ResumableStreamContext,
        ttl_seconds=settings.provided.stream_cache_ttl_seconds,
    )
    chat_locks = providers.Singleton(ChatLocks)
    generation_tasks = providers.Singleton(GenerationTasks)

    # --- Services ---

    entitlements = providers.Factory(EntitlementGate, chat_repo=chat_repo, message_repo=message_repo)

    tool_factory = providers.Factory(
        ToolFactory,
        documents=document_repo,
        suggestions=suggestion_repo,
        document_resolver=document_resolver,
        model_provider=model_provider,
        flags=settings.provided.flags,
    )

    chat_service: providers.Factory[ChatService] = providers.Factory(
        ChatService,
        settings=settings,
        chat_repo=chat_repo,
        message_repo=message_repo,
        stream_repo=stream_repo,
        chat_resolver=chat_resolver,
        entitlements=entitlements,
        model_provider=model_provider,
        tool_factory=tool_factory,
        model_catalog=model_catalog,
        stream_context=stream_context,
        chat_locks=chat_locks,
        generation_tasks=generation_tasks,
    )

    auth_service = providers.Factory(AuthService, user_repo=user_repo, secret=settings.provided.auth_secret)

    file_storage = providers.Singleton(
        FileStorage,
        root=settings.provided.upload_dir,
        secret=settings.provided.auth_secret,
    )

    newsletter_service = providers.Factory(
        NewsletterService,
        subscriber_repo=subscriber_repo,
        product_url=settings.provided.product_url,
        email_from=settings.provided.email_from,
    )


container = Container()
