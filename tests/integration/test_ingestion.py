"""Integration tests for the ingestion pipeline.

Wires the real chunker, batch planner, text extractor and vector stores
together with deterministic fakes for the embedding provider and
summarizer, and exercises each supported format end to end.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from docvector.interfaces.embedding_provider import IEmbeddingProvider
from docvector.models.document import IngestionRequest, IngestionResult, SourceKind
from docvector.providers.storage.local_storage_provider import LocalObjectStorageProvider
from docvector.providers.tokenizer.character_counter import CharacterTokenCounter
from docvector.providers.vector_store.memory_vector_store import InMemoryVectorStore
from docvector.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from docvector.services.ingestion.batch_planner import BatchPlanner
from docvector.services.ingestion.chunker import RecursiveChunker
from docvector.services.ingestion.ingestion_service import (
    DEFAULT_SUMMARY_PLACEHOLDER,
    IngestionService,
    compose_content,
)
from docvector.utils.errors import (
    ConfigurationError,
    EmbeddingProviderError,
    ExtractionError,
    MissingFieldError,
    UnsupportedFormatError,
)
from tests.conftest import FailingEmbeddingProvider, FakeSummarizer, MockEmbeddingProvider

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PDF_MIME = "application/pdf"
_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _chunker(max_tokens: int = 80, overlap: int = 10) -> RecursiveChunker:
    return RecursiveChunker(CharacterTokenCounter(), max_tokens=max_tokens, overlap_tokens=overlap)


def _service(
    store,
    provider: IEmbeddingProvider | None = None,
    summarizer: FakeSummarizer | None = None,
    chunker: RecursiveChunker | None = None,
    planner: BatchPlanner | None = None,
    object_storage: LocalObjectStorageProvider | None = None,
) -> IngestionService:
    return IngestionService(
        chunker=chunker or _chunker(),
        batch_planner=planner or BatchPlanner(),
        embedding_provider=provider or MockEmbeddingProvider(),
        vector_store=store,
        summarizer=summarizer,
        object_storage=object_storage,
    )


class _OrderedDelayProvider(MockEmbeddingProvider):
    """Finishes earlier batches last, so completion order is reversed."""

    def __init__(self, batch_count: int) -> None:
        super().__init__()
        self._remaining = batch_count

    async def embed(self, texts: list[str]) -> list[list[float]]:
        delay = self._remaining * 0.01
        self._remaining -= 1
        await asyncio.sleep(delay)
        return await super().embed(texts)


class _ShrinkingProvider(MockEmbeddingProvider):
    """Returns shorter vectors after the first batch."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors = await super().embed(texts)
        if len(self.calls) > 1:
            return [vector[:4] for vector in vectors]
        return vectors


class _BlockingProvider(MockEmbeddingProvider):
    """Holds every batch until ``release`` is set; ``started`` marks the first call."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.started.set()
        await self.release.wait()
        return await super().embed(texts)


# ---------------------------------------------------------------------------
# Per-format flows
# ---------------------------------------------------------------------------


class TestTextIngestion:
    @pytest.mark.asyncio
    async def test_text_document_end_to_end(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        provider = MockEmbeddingProvider()
        summarizer = FakeSummarizer()
        service = _service(memory_store, provider=provider, summarizer=summarizer)

        result = await service.ingest(
            data=sample_text.encode(),
            declared_format="text/plain",
            name="Team update",
            description="Weekly notes",
            scope_id="acme",
        )

        assert isinstance(result, IngestionResult)
        assert result.source_kind == SourceKind.TEXT
        assert result.summary_used is False
        assert result.warnings == []
        assert summarizer.calls == []

        document = await memory_store.get_document(result.document_id)
        assert document is not None
        assert document.raw_text == sample_text
        assert document.content == (
            f"Name: Team update\nDescription: Weekly notes\n\nOriginal Content:\n\n{sample_text}"
        )
        assert "AI Analysis" not in document.content

        records = await memory_store.query_embeddings("acme")
        assert len(records) == result.chunks_created
        assert result.chunks_created > 1
        assert [r.sequence_index for r in records] == list(range(len(records)))
        assert all(r.resource_id == result.document_id for r in records)

    @pytest.mark.asyncio
    async def test_records_follow_chunk_order(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        chunker = _chunker(max_tokens=60, overlap=0)
        service = _service(memory_store, chunker=chunker)

        result = await service.ingest(sample_text.encode(), "text", "Notes", "d", "acme")

        expected = chunker.split(
            compose_content("Notes", "d", SourceKind.TEXT, sample_text, None)
        )
        records = await memory_store.query_embeddings()
        assert [r.content for r in records] == [c.text for c in expected]
        assert result.total_tokens == sum(c.token_count for c in expected)

    @pytest.mark.asyncio
    async def test_short_document_is_one_chunk(self, memory_store: InMemoryVectorStore) -> None:
        service = _service(memory_store, chunker=_chunker(max_tokens=1000, overlap=200))
        result = await service.ingest(b"tiny", "text", "N", "D", "acme")
        assert result.chunks_created == 1
        assert result.batch_count == 1


class TestPdfIngestion:
    @pytest.mark.asyncio
    async def test_pdf_with_summary(
        self, memory_store: InMemoryVectorStore, pdf_bytes: bytes
    ) -> None:
        summarizer = FakeSummarizer("Revenue up, costs flat.")
        service = _service(memory_store, summarizer=summarizer)

        result = await service.ingest(pdf_bytes, _PDF_MIME, "Q3 report", "Quarterly", "acme")

        document = await memory_store.get_document(result.document_id)
        assert result.summary_used is True
        assert document.raw_text == "Quarterly revenue grew eleven percent.\n\nCosts were flat."
        assert document.content.endswith("\n\nAI Analysis:\n\nRevenue up, costs flat.")
        assert summarizer.calls[0]["mime_type"] == _PDF_MIME
        assert summarizer.calls[0]["display_name"] == "Q3 report"

    @pytest.mark.asyncio
    async def test_kind_name_maps_to_default_mime(
        self, memory_store: InMemoryVectorStore, pdf_bytes: bytes
    ) -> None:
        summarizer = FakeSummarizer()
        await _service(memory_store, summarizer=summarizer).ingest(
            pdf_bytes, "pdf", "Q3 report", "Quarterly", "acme"
        )
        assert summarizer.calls[0]["mime_type"] == _PDF_MIME

    @pytest.mark.asyncio
    async def test_pdf_without_summarizer_uses_placeholder(
        self, memory_store: InMemoryVectorStore, pdf_bytes: bytes
    ) -> None:
        result = await _service(memory_store).ingest(
            pdf_bytes, _PDF_MIME, "Q3 report", "Quarterly", "acme"
        )
        document = await memory_store.get_document(result.document_id)
        assert result.summary_used is False
        assert result.warnings == []
        assert document.content.endswith(f"AI Analysis:\n\n{DEFAULT_SUMMARY_PLACEHOLDER}")

    @pytest.mark.asyncio
    async def test_corrupt_pdf_raises_extraction_error(
        self, memory_store: InMemoryVectorStore
    ) -> None:
        provider = MockEmbeddingProvider()
        with pytest.raises(ExtractionError) as exc_info:
            await _service(memory_store, provider=provider).ingest(
                b"%PDF-broken", _PDF_MIME, "Broken", "d", "acme"
            )
        assert exc_info.value.document_name == "Broken"
        assert provider.calls == []
        assert await memory_store.query_embeddings() == []


class TestDocxIngestion:
    @pytest.mark.asyncio
    async def test_summary_failure_falls_back_to_placeholder(
        self, memory_store: InMemoryVectorStore, docx_bytes: bytes
    ) -> None:
        service = _service(memory_store, summarizer=FakeSummarizer(fail=True))

        result = await service.ingest(docx_bytes, _DOCX_MIME, "Minutes", "Board", "acme")

        document = await memory_store.get_document(result.document_id)
        assert result.summary_used is False
        assert len(result.warnings) == 1
        assert "Summarization failed" in result.warnings[0]
        assert "Retention policy | Approved" in document.content
        assert document.content.endswith(f"AI Analysis:\n\n{DEFAULT_SUMMARY_PLACEHOLDER}")
        assert result.chunks_created > 0


class TestExcelIngestion:
    @pytest.mark.asyncio
    async def test_excel_has_no_analysis(
        self, memory_store: InMemoryVectorStore, xlsx_bytes: bytes
    ) -> None:
        summarizer = FakeSummarizer()
        result = await _service(memory_store, summarizer=summarizer).ingest(
            xlsx_bytes, _XLSX_MIME, "Revenue", "By region", "acme"
        )

        document = await memory_store.get_document(result.document_id)
        assert summarizer.calls == []
        assert "AI Analysis" not in document.content
        assert "Row 2: North | 1200" in document.content

    @pytest.mark.asyncio
    async def test_legacy_xls_ingested(
        self, memory_store: InMemoryVectorStore, xls_bytes: bytes
    ) -> None:
        result = await _service(memory_store).ingest(
            xls_bytes, "application/vnd.ms-excel", "Revenue", "By region", "acme"
        )

        document = await memory_store.get_document(result.document_id)
        assert document.source_kind == SourceKind.EXCEL
        assert "Row 3: South | 950.5" in document.content
        assert result.chunks_created > 0


class TestImageIngestion:
    @pytest.mark.asyncio
    async def test_image_content_is_caption(
        self, memory_store: InMemoryVectorStore, png_bytes: bytes
    ) -> None:
        summarizer = FakeSummarizer("A bar chart of regional revenue.")
        result = await _service(memory_store, summarizer=summarizer).ingest(
            png_bytes, "image/png", "Chart", "Revenue chart", "acme"
        )

        document = await memory_store.get_document(result.document_id)
        assert document.raw_text == ""
        assert document.content == (
            "Name: Chart\nDescription: Revenue chart\n\n"
            "AI Analysis:\n\nA bar chart of regional revenue."
        )
        assert summarizer.calls[0]["mime_type"] == "image/png"
        assert result.summary_used is True

    @pytest.mark.asyncio
    async def test_image_without_summarizer(
        self, memory_store: InMemoryVectorStore, png_bytes: bytes
    ) -> None:
        result = await _service(memory_store).ingest(
            png_bytes, "image/jpeg", "Photo", "Office", "acme"
        )
        document = await memory_store.get_document(result.document_id)
        assert document.content.endswith(f"AI Analysis:\n\n{DEFAULT_SUMMARY_PLACEHOLDER}")
        assert result.chunks_created == 1


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.asyncio
    async def test_legacy_word_format_rejected(self, memory_store: InMemoryVectorStore) -> None:
        provider = MockEmbeddingProvider()
        summarizer = FakeSummarizer()
        service = _service(memory_store, provider=provider, summarizer=summarizer)

        with pytest.raises(UnsupportedFormatError) as exc_info:
            await service.ingest(b"\xd0\xcf\x11\xe0", "application/msword", "Old", "d", "acme")

        assert exc_info.value.document_name == "Old"
        assert provider.calls == []
        assert summarizer.calls == []
        assert await memory_store.query_embeddings() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("overrides", "field_name"),
        [
            ({"name": ""}, "name"),
            ({"description": "   "}, "description"),
            ({"scope_id": ""}, "scope_id"),
            ({"declared_format": ""}, "declared_format"),
            ({"data": b""}, "data"),
        ],
    )
    async def test_missing_fields_rejected_before_work(
        self, memory_store: InMemoryVectorStore, overrides: dict, field_name: str
    ) -> None:
        provider = MockEmbeddingProvider()
        summarizer = FakeSummarizer()
        service = _service(memory_store, provider=provider, summarizer=summarizer)
        kwargs = {
            "data": b"%PDF",
            "declared_format": _PDF_MIME,
            "name": "Report",
            "description": "Quarterly",
            "scope_id": "acme",
        }
        kwargs.update(overrides)

        with pytest.raises(MissingFieldError) as exc_info:
            await service.ingest(**kwargs)

        assert exc_info.value.field_name == field_name
        assert provider.calls == []
        assert summarizer.calls == []


# ---------------------------------------------------------------------------
# Batching and failure atomicity
# ---------------------------------------------------------------------------


class TestBatching:
    @pytest.mark.asyncio
    async def test_failed_middle_batch_persists_nothing(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        chunker = _chunker(max_tokens=40, overlap=0)
        content = compose_content("Notes", "Weekly", SourceKind.TEXT, sample_text, None)
        chunks = chunker.split(content)
        per_batch = -(-len(chunks) // 3)
        planner = BatchPlanner(max_batch_tokens=1_000_000, max_batch_items=per_batch)
        batches = planner.plan(chunks)
        assert len(batches) == 3

        failing_texts = batches[1].texts
        provider = FailingEmbeddingProvider(lambda texts: texts == failing_texts)
        service = _service(memory_store, provider=provider, chunker=chunker, planner=planner)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await service.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")

        error = exc_info.value
        assert error.batch_index == 1
        assert error.document_name == "Notes"
        assert "batch 2 of 3" in error.message
        assert len(provider.calls) == 3
        assert await memory_store.query_embeddings() == []
        assert memory_store._documents == {}

    @pytest.mark.asyncio
    async def test_batches_reassembled_in_chunk_order(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        chunker = _chunker(max_tokens=40, overlap=0)
        planner = BatchPlanner(max_batch_tokens=1_000_000, max_batch_items=2)
        content = compose_content("Notes", "Weekly", SourceKind.TEXT, sample_text, None)
        batch_count = len(planner.plan(chunker.split(content)))
        service = _service(
            memory_store,
            provider=_OrderedDelayProvider(batch_count),
            chunker=chunker,
            planner=planner,
        )

        result = await service.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")

        records = await memory_store.query_embeddings()
        assert result.batch_count == batch_count
        assert [r.sequence_index for r in records] == list(range(result.chunks_created))
        expected = [c.text for c in chunker.split(content)]
        assert [r.content for r in records] == expected

    @pytest.mark.asyncio
    async def test_oversized_chunks_embedded_alone_with_warning(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        provider = MockEmbeddingProvider()
        planner = BatchPlanner(max_batch_tokens=10)
        service = _service(
            memory_store, provider=provider, chunker=_chunker(max_tokens=50, overlap=0),
            planner=planner,
        )

        result = await service.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")

        assert result.warnings
        assert all("above the batch limit of 10" in w for w in result.warnings)
        assert all(len(call) == 1 for call in provider.calls)
        assert len(await memory_store.query_embeddings()) == result.chunks_created

    @pytest.mark.asyncio
    async def test_inconsistent_dimensions_fail_document(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        service = _service(
            memory_store,
            provider=_ShrinkingProvider(),
            chunker=_chunker(max_tokens=40, overlap=0),
            planner=BatchPlanner(max_batch_tokens=1_000_000, max_batch_items=1),
        )

        with pytest.raises(ConfigurationError):
            await service.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")
        assert await memory_store.query_embeddings() == []

    @pytest.mark.asyncio
    async def test_store_dimension_mismatch_fails_second_document(
        self, memory_store: InMemoryVectorStore
    ) -> None:
        await _service(memory_store, provider=MockEmbeddingProvider(dim=8)).ingest(
            b"first", "text", "A", "d", "acme"
        )
        with pytest.raises(ConfigurationError):
            await _service(memory_store, provider=MockEmbeddingProvider(dim=4)).ingest(
                b"second", "text", "B", "d", "acme"
            )
        assert len(memory_store._documents) == 1


# ---------------------------------------------------------------------------
# Storage, persistence and concurrency
# ---------------------------------------------------------------------------


class TestObjectStorage:
    @pytest.mark.asyncio
    async def test_upload_url_kept_and_passed_to_summarizer(
        self, memory_store: InMemoryVectorStore, pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        summarizer = FakeSummarizer()
        storage = LocalObjectStorageProvider(directory=tmp_path, base_url="https://cdn.test")
        service = _service(memory_store, summarizer=summarizer, object_storage=storage)

        result = await service.ingest(
            pdf_bytes, _PDF_MIME, "Q3 report", "Quarterly", "acme", file_name="q3.pdf"
        )

        document = await memory_store.get_document(result.document_id)
        assert result.source_url is not None
        assert result.source_url.startswith("https://cdn.test/")
        assert result.source_url.endswith("-q3.pdf")
        assert document.source_url == result.source_url
        assert summarizer.calls[0]["source_url"] == result.source_url

    @pytest.mark.asyncio
    async def test_failed_document_removes_upload(
        self, memory_store: InMemoryVectorStore, sample_text: str, tmp_path: Path
    ) -> None:
        storage = LocalObjectStorageProvider(directory=tmp_path)
        provider = FailingEmbeddingProvider(lambda texts: True)
        service = _service(memory_store, provider=provider, object_storage=storage)

        with pytest.raises(EmbeddingProviderError):
            await service.ingest(
                sample_text.encode(), "text", "Notes", "Weekly", "acme", file_name="notes.txt"
            )

        assert list(tmp_path.iterdir()) == []
        assert await memory_store.query_embeddings() == []


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_mid_embedding_persists_nothing(
        self, memory_store: InMemoryVectorStore, sample_text: str, tmp_path: Path
    ) -> None:
        uploads = tmp_path / "uploads"
        provider = _BlockingProvider()
        service = _service(
            memory_store,
            provider=provider,
            planner=BatchPlanner(max_batch_tokens=100),
            object_storage=LocalObjectStorageProvider(directory=uploads),
        )

        task = asyncio.create_task(
            service.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")
        )
        await asyncio.wait_for(provider.started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await memory_store.query_embeddings() == []
        assert memory_store._documents == {}
        assert list(uploads.iterdir()) == []

    @pytest.mark.asyncio
    async def test_cancelled_ingest_leaves_sqlite_usable(
        self, tmp_path: Path, sample_text: str
    ) -> None:
        store = SQLiteVectorStore(db_path=tmp_path / "vectors.db")
        await store.initialize()
        provider = _BlockingProvider()
        blocked = _service(store, provider=provider, planner=BatchPlanner(max_batch_tokens=100))

        task = asyncio.create_task(
            blocked.ingest(sample_text.encode(), "text", "Notes", "Weekly", "acme")
        )
        await asyncio.wait_for(provider.started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await store.query_embeddings() == []
        result = await _service(store).ingest(b"after the cancel", "text", "Next", "d", "acme")
        assert len(await store.query_embeddings()) == result.chunks_created


class TestSQLitePersistence:
    @pytest.mark.asyncio
    async def test_ingest_into_sqlite(self, tmp_path: Path, docx_bytes: bytes) -> None:
        store = SQLiteVectorStore(db_path=tmp_path / "vectors.db")
        await store.initialize()
        service = _service(store, summarizer=FakeSummarizer("Minutes summary."))

        result = await service.ingest(docx_bytes, _DOCX_MIME, "Minutes", "Board", "acme")

        document = await store.get_document(result.document_id)
        assert document is not None
        assert document.source_kind == SourceKind.DOCX
        assert len(await store.query_embeddings("acme")) == result.chunks_created
        assert await store.get_dimension() == 8


class TestIngestMany:
    @pytest.mark.asyncio
    async def test_failures_isolated_per_document(
        self, memory_store: InMemoryVectorStore, sample_text: str
    ) -> None:
        service = _service(memory_store)
        requests = [
            IngestionRequest(
                data=sample_text.encode(),
                declared_format="text",
                name="Good one",
                description="d",
                scope_id="acme",
            ),
            IngestionRequest(
                data=b"\xd0\xcf\x11\xe0",
                declared_format="application/msword",
                name="Legacy",
                description="d",
                scope_id="acme",
            ),
            IngestionRequest(
                data=b"another body",
                declared_format="text/markdown",
                name="Good two",
                description="d",
                scope_id="globex",
            ),
        ]

        outcomes = await service.ingest_many(requests, concurrency=2)

        assert isinstance(outcomes[0], IngestionResult)
        assert isinstance(outcomes[1], UnsupportedFormatError)
        assert isinstance(outcomes[2], IngestionResult)
        assert outcomes[0].document_name == "Good one"
        assert outcomes[2].document_name == "Good two"
        assert len(memory_store._documents) == 2
