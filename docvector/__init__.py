"""docvector - document-to-vector ingestion and similarity retrieval."""

__version__ = "0.1.0"
