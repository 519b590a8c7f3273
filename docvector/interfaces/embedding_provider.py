"""Abstract base class for text-embedding service providers.

Defines the contract for turning a batch of strings into fixed-dimension
vectors.  The ingestion pipeline plans batches itself, so implementations
send each ``embed`` call as exactly one provider request: no internal
re-batching and no internal retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider
# Located in: docvector/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for one planned batch of texts.

        Parameters
        ----------
        texts:
            The batch to embed, in chunk order.

        Returns
        -------
        list[list[float]]
            One vector per input, in the same order.  Position is the only
            correlation key between request and response.

        Raises
        ------
        docvector.utils.errors.EmbeddingProviderError
            If the call fails or returns the wrong number of vectors.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one string as a single-item batch (e.g. a search query)."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Must stay constant for the lifetime of the provider and match the
        dimension already stored in the vector store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
