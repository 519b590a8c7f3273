"""Shared pytest fixtures for the docvector test suite."""

from __future__ import annotations

import hashlib
import io
import struct
from collections.abc import Callable
from typing import Any

import docx
import fitz
import openpyxl
import pytest
import xlwt

from docvector.config.settings import Settings
from docvector.interfaces.embedding_provider import IEmbeddingProvider
from docvector.interfaces.summarizer import ISummarizer
from docvector.providers.tokenizer.character_counter import CharacterTokenCounter
from docvector.providers.vector_store.memory_vector_store import InMemoryVectorStore
from docvector.utils.errors import EmbeddingProviderError, SummarizationError

# ---------------------------------------------------------------------------
# Deterministic embedding helpers
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 8


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Unpacks SHA-256 bytes as unsigned ints, maps them into [-1, 1] and
    normalises to unit length.  Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    values = [v / 0xFFFFFFFF * 2.0 - 1.0 for v in struct.unpack(f"<{dim}I", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Records every batch it receives in ``calls``.
    """

    def __init__(self, dim: int = _EMBEDDING_DIM) -> None:
        self._dim = dim
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t, self._dim) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class FailingEmbeddingProvider(MockEmbeddingProvider):
    """Raises for any batch the ``should_fail`` predicate selects."""

    def __init__(self, should_fail: Callable[[list[str]], bool]) -> None:
        super().__init__()
        self._should_fail = should_fail

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if self._should_fail(texts):
            self.calls.append(list(texts))
            raise EmbeddingProviderError(
                message="simulated outage", provider_name=self.get_provider_name()
            )
        return await super().embed(texts)


class FakeSummarizer(ISummarizer):
    """Returns a canned analysis, or raises SummarizationError when ``fail`` is set."""

    def __init__(self, analysis: str = "A concise summary.", fail: bool = False) -> None:
        self._analysis = analysis
        self._fail = fail
        self.calls: list[dict[str, Any]] = []

    async def summarize(
        self,
        data: bytes | None,
        mime_type: str,
        *,
        source_url: str | None = None,
        display_name: str = "",
    ) -> str:
        self.calls.append(
            {"mime_type": mime_type, "source_url": source_url, "display_name": display_name}
        )
        if self._fail:
            raise SummarizationError(message="model unavailable", provider_name="fake")
        return self._analysis

    def get_provider_name(self) -> str:
        return "fake-summarizer"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def char_counter() -> CharacterTokenCounter:
    return CharacterTokenCounter()


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def sample_text() -> str:
    """Return a multi-paragraph text with a mix of separators."""
    paragraphs = [
        "Quarterly revenue grew eleven percent on the back of strong subscription "
        "renewals in the northern region.",
        "Operating costs were flat.\nHeadcount increased by four people in support.",
        "The board approved a new data retention policy covering customer uploads, "
        "backups and exported reports.",
        "Next quarter the team will focus on onboarding, pricing experiments and "
        "reducing churn among small accounts.",
    ]
    return "\n\n".join(paragraphs)


@pytest.fixture
def pdf_bytes() -> bytes:
    """Return a two-page PDF with text on the first and last page only."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Quarterly revenue grew eleven percent.")
    doc.new_page()
    page = doc.new_page()
    page.insert_text((72, 72), "Costs were flat.")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def docx_bytes() -> bytes:
    """Return a DOCX with a heading paragraph, a table and a closing paragraph."""
    document = docx.Document()
    document.add_paragraph("Board minutes")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Item"
    table.cell(0, 1).text = "Decision"
    table.cell(1, 0).text = "Retention policy"
    table.cell(1, 1).text = "Approved"
    document.add_paragraph("Meeting closed at noon.")
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_bytes() -> bytes:
    """Return a workbook with one empty sheet followed by a data sheet."""
    workbook = openpyxl.Workbook()
    empty = workbook.active
    empty.title = "Notes"
    data = workbook.create_sheet("Revenue")
    data.append(["Region", "Amount"])
    data.append(["North", 1200])
    data.append(["South", 950.5])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xls_bytes() -> bytes:
    """Return the same two sheets as ``xlsx_bytes`` in the legacy BIFF format."""
    workbook = xlwt.Workbook()
    workbook.add_sheet("Notes")
    data = workbook.add_sheet("Revenue")
    for row, values in enumerate([("Region", "Amount"), ("North", 1200), ("South", 950.5)]):
        for column, value in enumerate(values):
            data.write(row, column, value)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def mock_settings() -> Settings:
    """Return Settings with a dummy key, in-memory storage and no summarizer."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        summarizer_enabled=False,
        vector_store_backend="memory",
        upload_dir="",
    )
