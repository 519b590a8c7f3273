"""Custom exception hierarchy for docvector.

All application exceptions inherit from :class:`DocVectorError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "sqlite", "local_storage") caused the
failure.

The hierarchy is organized by ingestion stage:

    DocVectorError  (base -- catch-all for any docvector error)
    +-- ConfigurationError       (startup / dimension mismatch)
    +-- LLMError                 (vision or file-analysis call failure)
    +-- SummarizationError       (recoverable -- placeholder summary is used)
    +-- BatchTokenLimitExceeded  (recoverable -- oversized chunk sent alone)
    +-- EmbeddingProviderError   (fatal for the whole document)
    +-- PersistenceError         (fatal, surfaced verbatim)
    +-- IngestionError           (fatal request / extraction failures)
        +-- MissingFieldError
        +-- UnsupportedFormatError
        +-- ExtractionError
        +-- ObjectStorageError

Recoverable errors are caught at the smallest scope (one summarizer call,
one oversized chunk).  Fatal errors abort the document and reach the caller.
"""

from __future__ import annotations


class DocVectorError(Exception):
    """Base exception for all docvector errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / provider errors
# ---------------------------------------------------------------------------

class ConfigurationError(DocVectorError):
    """Raised when configuration is invalid, e.g. an embedding dimension mismatch."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(DocVectorError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Recoverable ingestion conditions
# ---------------------------------------------------------------------------

class SummarizationError(DocVectorError):
    """Raised when a summary or caption could not be produced.

    The ingestion pipeline absorbs this and substitutes a placeholder.
    """

    def __init__(
        self,
        message: str = "Summarization failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BatchTokenLimitExceeded(DocVectorError):
    """A single chunk is larger than the embedding batch token budget.

    Never raised by the pipeline; instances are logged and attached to the
    ingestion result as warnings while the chunk is embedded alone.
    """

    def __init__(
        self,
        sequence_index: int,
        token_count: int,
        token_limit: int,
    ) -> None:
        self.sequence_index = sequence_index
        self.token_count = token_count
        self.token_limit = token_limit
        super().__init__(
            message=(
                f"Chunk {sequence_index} has {token_count} tokens, above the "
                f"batch limit of {token_limit}; embedding it in its own batch"
            ),
        )


# ---------------------------------------------------------------------------
# Fatal ingestion errors
# ---------------------------------------------------------------------------

class EmbeddingProviderError(DocVectorError):
    """Raised when an embedding call fails.

    When raised by the ingestion pipeline, ``document_name`` and
    ``batch_index`` identify which document and batch failed.
    """

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
        document_name: str | None = None,
        batch_index: int | None = None,
    ) -> None:
        self.document_name = document_name
        self.batch_index = batch_index
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(DocVectorError):
    """Raised when the vector store cannot commit or read data."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(DocVectorError):
    """Base class for request and extraction failures of one document."""

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
        document_name: str | None = None,
    ) -> None:
        self.document_name = document_name
        super().__init__(message=message, provider_name=provider_name)


class MissingFieldError(IngestionError):
    """Raised when a required ingestion field is missing or blank."""

    def __init__(self, field_name: str, document_name: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(
            message=f"Missing required field: {field_name}",
            document_name=document_name,
        )


class UnsupportedFormatError(IngestionError):
    """Raised when the declared format is not one the extractor handles."""

    def __init__(self, declared_format: str, document_name: str | None = None) -> None:
        self.declared_format = declared_format
        super().__init__(
            message=f"Unsupported document format: {declared_format!r}",
            document_name=document_name,
        )


class ExtractionError(IngestionError):
    """Raised when source bytes cannot be parsed for their declared format."""

    def __init__(
        self,
        source_kind: str,
        cause: BaseException | str,
        document_name: str | None = None,
    ) -> None:
        self.source_kind = source_kind
        self.cause = cause
        super().__init__(
            message=f"Failed to extract {source_kind} content: {cause}",
            document_name=document_name,
        )


class ObjectStorageError(IngestionError):
    """Raised when the uploaded bytes cannot be written to object storage."""

    def __init__(
        self,
        message: str = "Object storage upload failed",
        provider_name: str | None = None,
        document_name: str | None = None,
    ) -> None:
        super().__init__(
            message=message, provider_name=provider_name, document_name=document_name
        )
