"""Public interface definitions for all external collaborators.

The pipeline reaches every external service through the abstract base
classes in this package.  Concrete adapters live in ``docvector/providers/``
and are built from settings in ``docvector/main.py``; tests inject fakes.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations
    ─────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    ILLMProvider               →  OpenAILLMProvider
    ISummarizer                →  LLMSummarizer
    ITokenCounter              →  TiktokenTokenCounter, CharacterTokenCounter
    IVectorStoreProvider       →  SQLiteVectorStore, InMemoryVectorStore
    IObjectStorageProvider     →  LocalObjectStorageProvider
"""

from docvector.interfaces.embedding_provider import IEmbeddingProvider
from docvector.interfaces.llm_provider import ILLMProvider, RemoteFile, RemoteFileState
from docvector.interfaces.object_storage_provider import IObjectStorageProvider
from docvector.interfaces.summarizer import ISummarizer
from docvector.interfaces.token_counter import ITokenCounter
from docvector.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IObjectStorageProvider",
    "ISummarizer",
    "ITokenCounter",
    "IVectorStoreProvider",
    "RemoteFile",
    "RemoteFileState",
]
