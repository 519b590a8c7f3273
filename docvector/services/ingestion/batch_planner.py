"""Groups a document's chunks into embedding batches under a token budget.

Embedding APIs reject requests whose total input is too large, so chunks
are packed greedily, in order, into batches of at most ``max_batch_tokens``
tokens (and at most ``max_batch_items`` inputs).  A chunk that alone
exceeds the token budget is never dropped or truncated: it gets a batch of
its own, flagged ``oversized`` so the pipeline can report it.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from docvector.models.document import Batch, Chunk

logger = structlog.get_logger(logger_name=__name__)


class BatchPlanner:
    """Greedy, order-preserving batch planner.

    Parameters
    ----------
    max_batch_tokens:
        Token budget per embedding call (default 300000).
    max_batch_items:
        Per-request input limit of the provider (default 2048).  ``None``
        disables the item limit.
    """

    def __init__(
        self,
        max_batch_tokens: int = 300_000,
        max_batch_items: int | None = 2048,
    ) -> None:
        if max_batch_tokens <= 0:
            msg = f"max_batch_tokens must be positive, got {max_batch_tokens}"
            raise ValueError(msg)
        if max_batch_items is not None and max_batch_items <= 0:
            msg = f"max_batch_items must be positive, got {max_batch_items}"
            raise ValueError(msg)
        self._max_batch_tokens = max_batch_tokens
        self._max_batch_items = max_batch_items

    @property
    def max_batch_tokens(self) -> int:
        return self._max_batch_tokens

    @property
    def max_batch_items(self) -> int | None:
        return self._max_batch_items

    def plan(self, chunks: Sequence[Chunk]) -> list[Batch]:
        """Split ``chunks`` into contiguous batches, preserving order."""
        batches: list[Batch] = []
        current: list[Chunk] = []
        current_tokens = 0

        for chunk in chunks:
            over_tokens = current_tokens + chunk.token_count > self._max_batch_tokens
            over_items = (
                self._max_batch_items is not None and len(current) >= self._max_batch_items
            )
            if current and (over_tokens or over_items):
                batches.append(self._close(len(batches), current, current_tokens))
                current = []
                current_tokens = 0
            current.append(chunk)
            current_tokens += chunk.token_count

        if current:
            batches.append(self._close(len(batches), current, current_tokens))

        logger.debug(
            "batches_planned",
            chunks=len(chunks),
            batches=len(batches),
            max_batch_tokens=self._max_batch_tokens,
        )
        return batches

    def _close(self, index: int, chunks: list[Chunk], token_count: int) -> Batch:
        return Batch(
            index=index,
            chunks=list(chunks),
            token_count=token_count,
            token_limit=self._max_batch_tokens,
        )
