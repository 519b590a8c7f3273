"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
The ingestion pipeline stores them with each chunk and the retrieval
service compares query vectors against them.

OpenAIEmbeddingProvider targets OpenAI's text-embedding-3-small by default
and any OpenAI-compatible endpoint via OPENAI_BASE_URL.
"""

from docvector.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
