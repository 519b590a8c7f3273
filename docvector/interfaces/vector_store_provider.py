"""Abstract base class for vector-store providers.

The store is a shared, append-only home for documents and their embedding
records.  Writes are atomic per document: :meth:`save_document` makes the
document and all of its records visible together or not at all, so a
concurrent reader never sees a partial set.  Ranking is not the store's job;
:class:`~docvector.services.retrieval.retrieval_service.RetrievalService`
scores whatever :meth:`query_embeddings` returns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docvector.models.document import Document, EmbeddingRecord


# Concrete implementations: SQLiteVectorStore, InMemoryVectorStore
# Located in: docvector/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for persisting documents with their embedding records."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing storage (create tables, directories)."""

    @abstractmethod
    async def save_document(self, document: Document, records: list[EmbeddingRecord]) -> str:
        """Persist ``document`` and ``records`` in one atomic commit.

        Returns
        -------
        str
            The stored document's identifier.

        Raises
        ------
        docvector.utils.errors.ConfigurationError
            If the records' dimension differs from vectors already stored.
        docvector.utils.errors.PersistenceError
            If the commit fails; nothing from this call is visible.
        """

    @abstractmethod
    async def query_embeddings(self, scope_id: str | None = None) -> list[EmbeddingRecord]:
        """Return stored records in insertion order, optionally scoped.

        Parameters
        ----------
        scope_id:
            When given, only records whose document has this scope.
        """

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return a stored document, or ``None`` if absent."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Remove a document and its records; return the number of records removed."""

    @abstractmethod
    async def get_dimension(self) -> int | None:
        """Return the dimension of stored vectors, or ``None`` while empty."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
