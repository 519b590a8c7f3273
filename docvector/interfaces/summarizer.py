"""Abstract base class for document/image summarizers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ISummarizer(ABC):
    """Produces a natural-language summary or caption for an upload.

    The ingestion pipeline treats summaries as best-effort: any
    :class:`~docvector.utils.errors.SummarizationError` is replaced by a
    placeholder and ingestion continues.
    """

    @abstractmethod
    async def summarize(
        self,
        data: bytes | None,
        mime_type: str,
        *,
        source_url: str | None = None,
        display_name: str = "",
    ) -> str:
        """Summarize a document, or caption an image.

        Parameters
        ----------
        data:
            The upload's bytes.  When ``None``, ``source_url`` is fetched.
        mime_type:
            MIME type of the upload; ``image/*`` selects captioning.
        source_url:
            Public URL of the upload, used when ``data`` is not supplied.
        display_name:
            Label attached to the upload on the provider side.

        Raises
        ------
        docvector.utils.errors.SummarizationError
            On any failure, including a terminal "failed" processing state.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this summarizer."""
