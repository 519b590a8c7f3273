"""In-memory vector store.

Keeps documents and records in process memory.  Used for tests, dry runs
and the ``memory`` backend setting; nothing survives a restart.  A save
mutates state without awaiting in between, so on a single event loop it
is atomic with respect to concurrent readers.
"""

from __future__ import annotations

import structlog

from docvector.interfaces.vector_store_provider import IVectorStoreProvider
from docvector.models.document import Document, EmbeddingRecord
from docvector.utils.errors import ConfigurationError, PersistenceError
from docvector.utils.similarity import common_dimension

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-backed document and embedding store."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._records: list[EmbeddingRecord] = []
        self._dimension: int | None = None

    async def initialize(self) -> None:
        logger.debug("vector_store_initialized", backend="memory")

    async def save_document(self, document: Document, records: list[EmbeddingRecord]) -> str:
        if document.id in self._documents:
            raise PersistenceError(
                message=f"Document {document.id} already exists",
                provider_name=self.get_provider_name(),
            )
        try:
            dimension = common_dimension([record.embedding for record in records])
        except ValueError as exc:
            raise ConfigurationError(
                message=str(exc), provider_name=self.get_provider_name()
            ) from exc
        if dimension is not None and self._dimension not in (None, dimension):
            raise ConfigurationError(
                message=(
                    f"Embedding dimension {dimension} does not match the "
                    f"{self._dimension}-dimensional vectors already stored"
                ),
                provider_name=self.get_provider_name(),
            )

        if dimension is not None:
            self._dimension = dimension
        self._documents[document.id] = document
        self._records.extend(records)
        logger.info("document_saved", document_id=document.id, records=len(records))
        return document.id

    async def query_embeddings(self, scope_id: str | None = None) -> list[EmbeddingRecord]:
        if scope_id is None:
            return list(self._records)
        return [
            record
            for record in self._records
            if self._documents[record.resource_id].scope_id == scope_id
        ]

    async def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    async def delete_document(self, document_id: str) -> int:
        before = len(self._records)
        self._records = [r for r in self._records if r.resource_id != document_id]
        self._documents.pop(document_id, None)
        return before - len(self._records)

    async def get_dimension(self) -> int | None:
        return self._dimension

    def get_provider_name(self) -> str:
        return "memory"
