"""Vector store implementations.

SQLiteVectorStore is the persistent default (aiosqlite, one transaction
per document).  InMemoryVectorStore backs tests and the ``memory``
backend setting.
"""

from docvector.providers.vector_store.memory_vector_store import InMemoryVectorStore
from docvector.providers.vector_store.sqlite_vector_store import SQLiteVectorStore

__all__ = ["InMemoryVectorStore", "SQLiteVectorStore"]
