"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **validate -> store upload -> extract -> summarize ->
chunk -> plan -> embed -> persist**.

The :class:`IngestionService` coordinates its collaborators (text
extractor, summarizer, chunker, batch planner, embedding provider, vector
store, object storage) without any of them knowing about each other.  All
are injected through the constructor, so tests swap in fakes and
production wiring lives in :mod:`docvector.main`.

Unit of failure is one document:

* Validation and format resolution happen before any other work.
* Summaries are best-effort; a failure becomes a placeholder and a warning.
* An oversized chunk is embedded alone and reported as a warning.
* Any failed embedding batch, or a failed commit, fails the whole document
  and nothing is persisted.  Records are only written after every batch has
  returned, in a single ``save_document`` call.
* An upload stored before a failure or cancellation is deleted again.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from docvector.models.document import (
    DEFAULT_MIME_TYPES,
    Batch,
    Chunk,
    Document,
    EmbeddingRecord,
    IngestionRequest,
    IngestionResult,
    SourceKind,
)
from docvector.services.ingestion.batch_planner import BatchPlanner
from docvector.services.ingestion.chunker import RecursiveChunker
from docvector.services.ingestion.text_extractor import TextExtractor
from docvector.utils.concurrency import throttled_gather
from docvector.utils.errors import (
    BatchTokenLimitExceeded,
    ConfigurationError,
    DocVectorError,
    EmbeddingProviderError,
    IngestionError,
    MissingFieldError,
    SummarizationError,
    UnsupportedFormatError,
)
from docvector.utils.similarity import common_dimension

if TYPE_CHECKING:
    from docvector.interfaces.embedding_provider import IEmbeddingProvider
    from docvector.interfaces.object_storage_provider import IObjectStorageProvider
    from docvector.interfaces.summarizer import ISummarizer
    from docvector.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SUMMARY_PLACEHOLDER = "No analysis available"


def compose_content(
    name: str,
    description: str,
    kind: SourceKind,
    raw_text: str,
    analysis: str | None,
) -> str:
    """Build the text that gets chunked: a stable header, the raw text, the analysis.

    Images have no raw text, so their caption stands in as the content.
    """
    header = f"Name: {name}\nDescription: {description}\n\n"
    if kind == SourceKind.IMAGE:
        return f"{header}AI Analysis:\n\n{analysis or ''}"

    content = f"{header}Original Content:\n\n{raw_text}"
    if analysis is not None:
        content += f"\n\nAI Analysis:\n\n{analysis}"
    return content


class IngestionService:
    """Drives one upload from raw bytes to persisted embedding records.

    Parameters
    ----------
    chunker:
        Splits the combined text into token-bounded chunks.
    batch_planner:
        Groups chunks under the embedding provider's token budget.
    embedding_provider:
        Embeds one planned batch per call.
    vector_store:
        Receives the document and its records in one atomic save.
    extractor:
        Raw-text extraction by format; a default instance when omitted.
    summarizer:
        Optional analysis for PDF, DOCX and images.  Without one, the
        placeholder is used.
    object_storage:
        Optional store for the original upload; its URL is kept on the
        document.  The upload is deleted again if the document is not saved.
    embedding_concurrency:
        Maximum batches of one document in flight at once.
    summary_placeholder:
        Text used when no analysis is available.
    """

    def __init__(
        self,
        chunker: RecursiveChunker,
        batch_planner: BatchPlanner,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        extractor: TextExtractor | None = None,
        summarizer: ISummarizer | None = None,
        object_storage: IObjectStorageProvider | None = None,
        embedding_concurrency: int = 4,
        summary_placeholder: str = DEFAULT_SUMMARY_PLACEHOLDER,
    ) -> None:
        self._chunker = chunker
        self._batch_planner = batch_planner
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._extractor = extractor or TextExtractor()
        self._summarizer = summarizer
        self._object_storage = object_storage
        self._embedding_concurrency = max(1, embedding_concurrency)
        self._summary_placeholder = summary_placeholder

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        data: bytes,
        declared_format: str,
        name: str,
        description: str,
        scope_id: str,
        file_name: str | None = None,
    ) -> IngestionResult:
        """Ingest one upload and return statistics about the run.

        Raises
        ------
        MissingFieldError, UnsupportedFormatError
            Before any work starts.
        ExtractionError, ObjectStorageError
            When the upload cannot be stored or parsed.
        EmbeddingProviderError
            When any batch fails; names the document and batch.
        ConfigurationError
            On an embedding dimension mismatch.
        PersistenceError
            When the commit fails.
        """
        start = time.monotonic()
        kind = self._validate(data, declared_format, name, description, scope_id)
        log = logger.bind(document_name=name, source_kind=kind.value, scope_id=scope_id)
        log.info("ingestion_started", bytes=len(data))

        warnings: list[str] = []
        document_id = str(uuid.uuid4())

        source_url = await self._store_upload(data, file_name or name, name)
        saved = False
        try:
            raw_text = await self._extract(data, kind, name)

            analysis: str | None = None
            summary_used = False
            if kind.requires_analysis:
                analysis, summary_used = await self._analyse(
                    data, kind, declared_format, name, source_url, warnings
                )

            content = compose_content(name, description, kind, raw_text, analysis)
            chunks = self._chunker.split(content)
            batches = self._batch_planner.plan(chunks)
            self._report_oversized(batches, name, warnings)

            vectors = await self._embed_batches(batches, name)

            document = Document(
                id=document_id,
                name=name,
                description=description,
                source_kind=kind,
                raw_text=raw_text,
                content=content,
                source_url=source_url,
                scope_id=scope_id,
            )
            records = [
                EmbeddingRecord(
                    resource_id=document_id,
                    sequence_index=chunk.sequence_index,
                    content=chunk.text,
                    embedding=vector,
                )
                for chunk, vector in zip(chunks, vectors)
            ]
            await self._vector_store.save_document(document, records)
            saved = True
        finally:
            if not saved and source_url is not None:
                await self._discard_upload(source_url, name)

        elapsed = time.monotonic() - start
        result = IngestionResult(
            document_id=document_id,
            document_name=name,
            source_kind=kind,
            source_url=source_url,
            chunks_created=len(chunks),
            batch_count=len(batches),
            total_tokens=sum(chunk.token_count for chunk in chunks),
            summary_used=summary_used,
            warnings=warnings,
            ingestion_time=round(elapsed, 3),
        )
        log.info(
            "ingestion_complete",
            document_id=document_id,
            chunks=result.chunks_created,
            batches=result.batch_count,
            tokens=result.total_tokens,
            warnings=len(warnings),
            elapsed_s=result.ingestion_time,
        )
        return result

    async def ingest_many(
        self,
        requests: Sequence[IngestionRequest],
        concurrency: int = 2,
    ) -> list[IngestionResult | DocVectorError]:
        """Ingest independent uploads concurrently.

        Returns one entry per request, in request order: the
        :class:`IngestionResult`, or the error that failed that document.
        A failure never affects the other documents.
        """
        coros = [
            self.ingest(
                request.data,
                request.declared_format,
                request.name,
                request.description,
                request.scope_id,
                file_name=request.file_name,
            )
            for request in requests
        ]
        outcomes = await throttled_gather(coros, limit=concurrency, return_exceptions=True)

        results: list[IngestionResult | DocVectorError] = []
        for request, outcome in zip(requests, outcomes):
            if isinstance(outcome, DocVectorError):
                logger.warning("ingestion_failed", document_name=request.name, error=str(outcome))
                results.append(outcome)
            elif isinstance(outcome, BaseException):
                # Programming errors and cancellation are not per-document outcomes.
                raise outcome
            else:
                results.append(outcome)
        return results

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(
        data: bytes,
        declared_format: str,
        name: str,
        description: str,
        scope_id: str,
    ) -> SourceKind:
        document_name = name or None
        for field_name, value in (
            ("name", name),
            ("description", description),
            ("scope_id", scope_id),
            ("declared_format", declared_format),
        ):
            if not value or not str(value).strip():
                raise MissingFieldError(field_name, document_name=document_name)
        if not data:
            raise MissingFieldError("data", document_name=document_name)

        try:
            return SourceKind.resolve(declared_format)
        except UnsupportedFormatError as exc:
            exc.document_name = name
            raise

    async def _store_upload(self, data: bytes, file_name: str, name: str) -> str | None:
        if self._object_storage is None:
            return None
        try:
            return await self._object_storage.upload(data, file_name)
        except IngestionError as exc:
            exc.document_name = name
            raise

    async def _discard_upload(self, url: str, name: str) -> None:
        """Remove the stored upload of a document that was never saved."""
        removed = await self._object_storage.delete(url)
        if removed:
            logger.info("upload_discarded", document_name=name, source_url=url)
        else:
            logger.warning("upload_orphaned", document_name=name, source_url=url)

    async def _extract(self, data: bytes, kind: SourceKind, name: str) -> str:
        try:
            return await asyncio.to_thread(self._extractor.extract, data, kind)
        except IngestionError as exc:
            exc.document_name = name
            raise

    async def _analyse(
        self,
        data: bytes,
        kind: SourceKind,
        declared_format: str,
        name: str,
        source_url: str | None,
        warnings: list[str],
    ) -> tuple[str, bool]:
        """Return ``(analysis, used)``; the placeholder when summarization fails."""
        if self._summarizer is None:
            return self._summary_placeholder, False

        mime_type = declared_format if "/" in declared_format else DEFAULT_MIME_TYPES[kind]
        try:
            analysis = await self._summarizer.summarize(
                data, mime_type, source_url=source_url, display_name=name
            )
        except SummarizationError as exc:
            logger.warning("summarization_failed", document_name=name, error=str(exc))
            warnings.append(f"Summarization failed: {exc}")
            return self._summary_placeholder, False
        return analysis, True

    @staticmethod
    def _report_oversized(batches: list[Batch], name: str, warnings: list[str]) -> None:
        for batch in batches:
            if not batch.oversized:
                continue
            chunk = batch.chunks[0]
            condition = BatchTokenLimitExceeded(
                sequence_index=chunk.sequence_index,
                token_count=chunk.token_count,
                token_limit=batch.token_limit,
            )
            logger.warning(
                "oversized_chunk_batch",
                document_name=name,
                batch_index=batch.index,
                sequence_index=chunk.sequence_index,
                tokens=chunk.token_count,
                limit=batch.token_limit,
            )
            warnings.append(str(condition))

    async def _embed_batches(self, batches: list[Batch], name: str) -> list[list[float]]:
        """Embed every batch and return vectors in chunk order.

        Batches run concurrently; results are placed by batch index, not by
        completion order.  The first failed batch (in batch order) fails the
        document once every call has settled.
        """
        coros = [self._embed_batch(batch) for batch in batches]
        outcomes = await throttled_gather(
            coros, limit=self._embedding_concurrency, return_exceptions=True
        )

        vectors: list[list[float]] = []
        for batch, outcome in zip(batches, outcomes):
            if isinstance(outcome, BaseException):
                self._raise_batch_failure(outcome, batch, len(batches), name)
            vectors.extend(outcome)

        try:
            common_dimension(vectors)
        except ValueError as exc:
            raise ConfigurationError(
                message=f"Provider returned inconsistent vectors for '{name}': {exc}",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc
        return vectors

    async def _embed_batch(self, batch: Batch) -> list[list[float]]:
        vectors = await self._embedding_provider.embed(batch.texts)
        if len(vectors) != len(batch.chunks):
            raise EmbeddingProviderError(
                message=f"expected {len(batch.chunks)} vectors, got {len(vectors)}",
                provider_name=self._embedding_provider.get_provider_name(),
            )
        return vectors

    def _raise_batch_failure(
        self,
        error: BaseException,
        batch: Batch,
        batch_total: int,
        name: str,
    ) -> None:
        if not isinstance(error, Exception):
            # CancelledError and friends propagate untouched.
            raise error
        if isinstance(error, ConfigurationError):
            raise error
        first: Chunk = batch.chunks[0]
        detail = error.message if isinstance(error, DocVectorError) else str(error)
        logger.error(
            "embedding_batch_failed",
            document_name=name,
            batch_index=batch.index,
            batch_total=batch_total,
            first_chunk=first.sequence_index,
            error=detail,
        )
        raise EmbeddingProviderError(
            message=(
                f"Embedding failed for document '{name}' at batch "
                f"{batch.index + 1} of {batch_total}: {detail}"
            ),
            provider_name=self._embedding_provider.get_provider_name(),
            document_name=name,
            batch_index=batch.index,
        ) from error
