"""Pydantic data models for docvector."""

from docvector.models.document import (
    Batch,
    Chunk,
    Document,
    EmbeddingRecord,
    IngestionRequest,
    IngestionResult,
    SimilarityResult,
    SourceKind,
)

__all__ = [
    "Batch",
    "Chunk",
    "Document",
    "EmbeddingRecord",
    "IngestionRequest",
    "IngestionResult",
    "SimilarityResult",
    "SourceKind",
]
