"""Application wiring: builds providers and services from :class:`Settings`.

Every collaborator is constructed here and passed explicitly into the
services, so nothing in the pipeline reads global configuration.  The CLI
(and any embedding application, e.g. an HTTP layer) calls these factories.

Imports of the heavy provider modules (openai, tiktoken, aiosqlite) are
deferred into the functions that need them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docvector.config.settings import Settings
from docvector.utils.errors import ConfigurationError

if TYPE_CHECKING:
    from docvector.interfaces.embedding_provider import IEmbeddingProvider
    from docvector.interfaces.object_storage_provider import IObjectStorageProvider
    from docvector.interfaces.summarizer import ISummarizer
    from docvector.interfaces.token_counter import ITokenCounter
    from docvector.interfaces.vector_store_provider import IVectorStoreProvider
    from docvector.services.ingestion.ingestion_service import IngestionService
    from docvector.services.retrieval.retrieval_service import RetrievalService

logger = structlog.get_logger(logger_name=__name__)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    from docvector.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    provider = OpenAIEmbeddingProvider(settings=app_settings)
    if not provider.is_available():
        raise ConfigurationError(
            message="No embedding provider available: set OPENAI_API_KEY",
            provider_name=provider.get_provider_name(),
        )
    return provider


def _build_summarizer(app_settings: Settings) -> ISummarizer | None:
    """Return the LLM summarizer, or ``None`` when disabled or unconfigured.

    Without a summarizer, ingestion uses the placeholder analysis.
    """
    if not app_settings.summarizer_enabled:
        return None

    from docvector.providers.llm.openai_provider import OpenAILLMProvider
    from docvector.providers.summarizer.llm_summarizer import LLMSummarizer

    llm = OpenAILLMProvider(settings=app_settings)
    if not llm.is_available():
        logger.warning("summarizer_unavailable", reason="no LLM credentials")
        return None
    return LLMSummarizer(
        llm=llm,
        poll_interval=app_settings.summarizer_poll_interval,
        timeout=app_settings.summarizer_timeout,
    )


def _build_token_counter(app_settings: Settings) -> ITokenCounter:
    from docvector.providers.tokenizer.tiktoken_counter import TiktokenTokenCounter

    return TiktokenTokenCounter(model=app_settings.tokenizer_model)


def _build_object_storage(app_settings: Settings) -> IObjectStorageProvider | None:
    if not app_settings.upload_dir:
        return None

    from docvector.providers.storage.local_storage_provider import (
        LocalObjectStorageProvider,
    )

    return LocalObjectStorageProvider(
        directory=app_settings.upload_dir,
        base_url=app_settings.upload_base_url,
    )


async def build_vector_store(app_settings: Settings) -> IVectorStoreProvider:
    """Create and initialize the configured vector store backend."""
    if app_settings.vector_store_backend == "memory":
        from docvector.providers.vector_store.memory_vector_store import (
            InMemoryVectorStore,
        )

        store: IVectorStoreProvider = InMemoryVectorStore()
    else:
        from docvector.providers.vector_store.sqlite_vector_store import (
            SQLiteVectorStore,
        )

        store = SQLiteVectorStore(db_path=app_settings.vector_store_db_path)
    await store.initialize()
    return store


def build_ingestion_service(
    app_settings: Settings,
    vector_store: IVectorStoreProvider,
    embedding_provider: IEmbeddingProvider | None = None,
) -> IngestionService:
    """Wire the ingestion pipeline from settings."""
    from docvector.services.ingestion.batch_planner import BatchPlanner
    from docvector.services.ingestion.chunker import RecursiveChunker
    from docvector.services.ingestion.ingestion_service import IngestionService

    chunker = RecursiveChunker(
        token_counter=_build_token_counter(app_settings),
        max_tokens=app_settings.chunk_max_tokens,
        overlap_tokens=app_settings.chunk_overlap_tokens,
    )
    planner = BatchPlanner(
        max_batch_tokens=app_settings.batch_max_tokens,
        max_batch_items=app_settings.batch_max_items,
    )
    service = IngestionService(
        chunker=chunker,
        batch_planner=planner,
        embedding_provider=embedding_provider or _build_embedding_provider(app_settings),
        vector_store=vector_store,
        summarizer=_build_summarizer(app_settings),
        object_storage=_build_object_storage(app_settings),
        embedding_concurrency=app_settings.embedding_concurrency,
        summary_placeholder=app_settings.summary_placeholder,
    )
    logger.info(
        "ingestion_service_built",
        vector_store=vector_store.get_provider_name(),
        chunk_max_tokens=app_settings.chunk_max_tokens,
        batch_max_tokens=app_settings.batch_max_tokens,
    )
    return service


def build_retrieval_service(
    app_settings: Settings,
    vector_store: IVectorStoreProvider,
    embedding_provider: IEmbeddingProvider | None = None,
) -> RetrievalService:
    """Wire the retrieval service from settings."""
    from docvector.services.retrieval.retrieval_service import RetrievalService

    return RetrievalService(
        embedding_provider=embedding_provider or _build_embedding_provider(app_settings),
        vector_store=vector_store,
    )
