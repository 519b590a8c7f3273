"""Ranked similarity retrieval over stored embedding records.

The query is embedded as a single-item batch and compared with every
stored record (optionally only those of one scope) by cosine similarity.
Records at or below ``similarity_threshold`` are dropped, the rest are
sorted by descending similarity with ties kept in insertion order, an
optional stricter ``post_filter_threshold`` is applied, and the list is cut
to ``top_k``.  Thresholds are always supplied by the caller; an empty list
is a normal answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docvector.models.document import SimilarityResult
from docvector.utils.errors import ConfigurationError
from docvector.utils.similarity import cosine_similarities

if TYPE_CHECKING:
    from docvector.interfaces.embedding_provider import IEmbeddingProvider
    from docvector.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class RetrievalService:
    """Embeds queries and ranks stored chunks against them."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store

    async def retrieve(
        self,
        query: str,
        top_k: int,
        similarity_threshold: float,
        scope_id: str | None = None,
        post_filter_threshold: float | None = None,
    ) -> list[SimilarityResult]:
        """Return up to ``top_k`` chunks scoring above the thresholds.

        Parameters
        ----------
        query:
            Natural-language query.
        top_k:
            Maximum number of results.
        similarity_threshold:
            Results must score strictly above this value.
        scope_id:
            Restrict the search to documents with this scope.
        post_filter_threshold:
            Optional second, stricter cut applied after ranking.
        """
        if top_k <= 0:
            return []
        normalized = query.replace("\n", " ").strip()
        if not normalized:
            return []

        query_vector = (await self._embedding_provider.embed([normalized]))[0]
        records = await self._vector_store.query_embeddings(scope_id)
        if not records:
            logger.info("retrieval_empty_store", scope_id=scope_id)
            return []

        try:
            scores = cosine_similarities(query_vector, [r.embedding for r in records])
        except ValueError as exc:
            raise ConfigurationError(
                message=f"Query embedding does not match stored vectors: {exc}",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc

        candidates = [
            (score, record)
            for score, record in zip(scores, records)
            if score > similarity_threshold
        ]
        # sorted() is stable, so equal scores keep insertion order.
        candidates = sorted(candidates, key=lambda pair: pair[0], reverse=True)
        if post_filter_threshold is not None:
            candidates = [pair for pair in candidates if pair[0] > post_filter_threshold]

        results = [
            SimilarityResult(
                content=record.content,
                similarity=score,
                resource_id=record.resource_id,
            )
            for score, record in candidates[:top_k]
        ]
        logger.info(
            "retrieval_complete",
            scope_id=scope_id,
            scanned=len(records),
            matched=len(candidates),
            returned=len(results),
            threshold=similarity_threshold,
            post_filter=post_filter_threshold,
        )
        return results
