"""Data models for the ingestion and retrieval pipeline.

Defines Pydantic v2 models for documents, chunks, embedding batches,
persisted embedding records and similarity results.  All models use frozen
config so that a value handed from one pipeline stage to the next cannot be
mutated behind the receiver's back.

Lifecycle of one upload:

    1. The declared format resolves to a :class:`SourceKind`.
    2. Extraction + summary produce the combined text stored on
       :class:`Document` as ``content``.
    3. The chunker splits ``content`` into ordered :class:`Chunk` objects.
    4. The batch planner groups chunks into :class:`Batch` objects, one
       embedding call each.
    5. Each chunk plus its vector becomes an :class:`EmbeddingRecord`,
       persisted together with the :class:`Document`.
    6. At query time the retriever scores records into
       :class:`SimilarityResult` objects.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from docvector.utils.errors import UnsupportedFormatError


# ---------------------------------------------------------------------------
# SourceKind - the closed set of supported upload formats.
# ---------------------------------------------------------------------------
class SourceKind(str, Enum):
    """Supported upload formats.

    New formats are added here plus one extraction function in
    :mod:`docvector.services.ingestion.text_extractor`.
    """

    PDF = "pdf"
    DOCX = "docx"
    EXCEL = "excel"
    IMAGE = "image"
    TEXT = "text"

    @property
    def requires_analysis(self) -> bool:
        """Whether ingestion asks the summarizer for an AI analysis."""
        return self in (SourceKind.PDF, SourceKind.DOCX, SourceKind.IMAGE)

    @classmethod
    def resolve(cls, declared_format: str) -> SourceKind:
        """Map a MIME type or kind name onto a SourceKind.

        Raises
        ------
        UnsupportedFormatError
            For legacy binary Word documents and anything unrecognised.
        """
        key = (declared_format or "").strip().lower()
        # Drop MIME parameters such as "; charset=utf-8".
        key = key.split(";", 1)[0].strip()
        try:
            return cls(key)
        except ValueError:
            pass
        kind = _MIME_TYPES.get(key)
        if kind is None:
            raise UnsupportedFormatError(declared_format)
        return kind


_MIME_TYPES: dict[str, SourceKind] = {
    "application/pdf": SourceKind.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": SourceKind.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": SourceKind.EXCEL,
    "application/vnd.ms-excel": SourceKind.EXCEL,
    "image/png": SourceKind.IMAGE,
    "image/jpeg": SourceKind.IMAGE,
    "image/webp": SourceKind.IMAGE,
    "text/plain": SourceKind.TEXT,
    "text/markdown": SourceKind.TEXT,
    "text/csv": SourceKind.TEXT,
}

# MIME types handed to the summarizer for each kind that needs analysis.
DEFAULT_MIME_TYPES: dict[SourceKind, str] = {
    SourceKind.PDF: "application/pdf",
    SourceKind.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    SourceKind.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    SourceKind.IMAGE: "image/jpeg",
    SourceKind.TEXT: "text/plain",
}


# ---------------------------------------------------------------------------
# Document - one upload, created once and immutable after commit.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """An ingested upload together with the text that was embedded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for the document.")
    name: str = Field(description="Caller-supplied document name.")
    description: str = Field(description="Caller-supplied document description.")
    source_kind: SourceKind = Field(description="Resolved upload format.")
    raw_text: str = Field(default="", description="Text extracted from the upload itself.")
    content: str = Field(
        default="",
        description="Combined text that was chunked: header, raw text and analysis.",
    )
    source_url: str | None = Field(
        default=None, description="Object-storage URL of the original upload, if stored."
    )
    scope_id: str = Field(
        description="Tenant, company or subject identifier used to scope retrieval."
    )


# ---------------------------------------------------------------------------
# Chunk - a token-bounded window over a document's combined text.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """An ordered slice of text sized to fit the embedding model's window.

    ``start_offset`` locates ``text`` inside the text that was split, so the
    overlap with the previous chunk is ``previous.end_offset - start_offset``
    characters.
    """

    model_config = ConfigDict(frozen=True)

    sequence_index: int = Field(ge=0, description="Position of the chunk in its document.")
    text: str = Field(description="The chunk's textual content.")
    token_count: int = Field(ge=0, description="Token count measured on this exact text.")
    start_offset: int = Field(
        default=0, ge=0, description="Character offset of the chunk in the split text."
    )

    @property
    def end_offset(self) -> int:
        return self.start_offset + len(self.text)


# ---------------------------------------------------------------------------
# Batch - chunks sent to the embedding provider in one call.
# ---------------------------------------------------------------------------
class Batch(BaseModel):
    """A contiguous, order-preserving group of chunks for one embedding call."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Position of the batch in the plan.")
    chunks: list[Chunk] = Field(description="Chunks in their original order.")
    token_count: int = Field(ge=0, description="Sum of the chunks' token counts.")
    token_limit: int = Field(gt=0, description="Budget the batch was planned against.")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def oversized(self) -> bool:
        """True for the single-chunk batch whose chunk alone exceeds the budget."""
        return len(self.chunks) == 1 and self.token_count > self.token_limit

    @property
    def texts(self) -> list[str]:
        return [chunk.text for chunk in self.chunks]


# ---------------------------------------------------------------------------
# EmbeddingRecord - one persisted chunk/vector pair.
# ---------------------------------------------------------------------------
class EmbeddingRecord(BaseModel):
    """A chunk's text and vector, attributed to its parent document."""

    model_config = ConfigDict(frozen=True)

    resource_id: str = Field(description="Identifier of the parent Document.")
    sequence_index: int = Field(default=0, ge=0, description="Chunk position in the document.")
    content: str = Field(description="The chunk text that was embedded.")
    embedding: list[float] = Field(description="Fixed-length embedding vector.")


# ---------------------------------------------------------------------------
# SimilarityResult - a ranked retrieval hit.
# ---------------------------------------------------------------------------
class SimilarityResult(BaseModel):
    """A stored chunk scored against a query.  Never persisted."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Text of the matching chunk.")
    similarity: float = Field(
        ge=-1.0, le=1.0, description="Cosine similarity between query and chunk."
    )
    resource_id: str = Field(description="Identifier of the Document the chunk belongs to.")


# ---------------------------------------------------------------------------
# IngestionRequest / IngestionResult - pipeline input and output.
# ---------------------------------------------------------------------------
class IngestionRequest(BaseModel):
    """One upload queued for :meth:`IngestionService.ingest_many`."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="Raw uploaded bytes.")
    declared_format: str = Field(description="MIME type or kind name of the upload.")
    name: str
    description: str
    scope_id: str
    file_name: str | None = None


class IngestionResult(BaseModel):
    """Summary of a single successful document ingestion.

    Returned by :meth:`IngestionService.ingest` and printed by the CLI.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Identifier assigned to the stored document.")
    document_name: str = Field(description="Name of the ingested document.")
    source_kind: SourceKind
    source_url: str | None = None
    chunks_created: int = Field(default=0, ge=0, description="Number of chunks stored.")
    batch_count: int = Field(default=0, ge=0, description="Number of embedding calls made.")
    total_tokens: int = Field(default=0, ge=0, description="Token count across all chunks.")
    summary_used: bool = Field(
        default=False, description="True when a real AI analysis (not the placeholder) was used."
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Recoverable problems: failed summaries, oversized chunks.",
    )
    ingestion_time: float = Field(
        default=0.0, ge=0.0, description="Wall-clock time in seconds for the ingestion run."
    )
