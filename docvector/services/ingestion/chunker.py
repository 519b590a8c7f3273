"""Recursive, token-bounded text chunking with overlapping windows.

Splits a document's combined text into :class:`~docvector.models.document.Chunk`
objects sized for the embedding model (1000 tokens with a 200-token overlap
by default).

The splitter tries separators in priority order: paragraph break, line
break, space, and finally the empty string (individual characters).  At
each level:

1. A segment that already fits the budget is kept whole.
2. Otherwise it is cut after every occurrence of the highest-priority
   separator present.  The separator stays on the end of the piece before
   it, so pieces are exact, contiguous slices of the input.
3. Pieces that fit are merged greedily.  Token counts are not additive
   across a join, so a window end estimated from the pieces' own counts is
   always confirmed by counting the joined text.  When the next piece would
   overflow the window, the window is emitted and trimmed from the front to
   at most ``overlap_tokens`` so the next chunk starts with the tail of the
   previous one.
4. Pieces that do not fit recurse with the remaining separators.  A piece
   no separator can shrink is emitted alone, oversized.

Every chunk is an exact substring of the input and records its
``start_offset``; stitching each chunk on from the previous chunk's end
rebuilds the input character for character.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Callable, Sequence
from itertools import accumulate

import structlog

from docvector.interfaces.token_counter import ITokenCounter
from docvector.models.document import Chunk

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")

_Span = tuple[int, int]


class RecursiveChunker:
    """Splits text into overlapping, token-bounded chunks.

    Parameters
    ----------
    token_counter:
        Measures every candidate window.
    max_tokens:
        Maximum token count per chunk (default 1000).  Only a piece that no
        separator can split further may exceed it.
    overlap_tokens:
        Upper bound on the tokens shared by consecutive chunks (default 200).
    separators:
        Split points in priority order.
    """

    def __init__(
        self,
        token_counter: ITokenCounter,
        max_tokens: int = 1000,
        overlap_tokens: int = 200,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if max_tokens <= 0:
            msg = f"max_tokens must be positive, got {max_tokens}"
            raise ValueError(msg)
        if not 0 <= overlap_tokens < max_tokens:
            msg = (
                f"overlap_tokens must be in [0, max_tokens), got {overlap_tokens} "
                f"with max_tokens={max_tokens}"
            )
            raise ValueError(msg)
        self._counter = token_counter
        self._max_tokens = max_tokens
        self._overlap_tokens = overlap_tokens
        self._separators = tuple(separators)

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def overlap_tokens(self) -> int:
        return self._overlap_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[Chunk]:
        """Split ``text`` into ordered chunks.

        Empty text yields no chunks; text within the budget yields a single
        chunk equal to the input.
        """
        if not text:
            return []

        spans = self._split_span(text, 0, len(text), self._separators)

        chunks: list[Chunk] = []
        for index, (start, end) in enumerate(spans):
            piece = text[start:end]
            chunks.append(
                Chunk(
                    sequence_index=index,
                    text=piece,
                    token_count=self._counter.count(piece),
                    start_offset=start,
                )
            )

        logger.debug(
            "text_chunked",
            characters=len(text),
            chunks=len(chunks),
            max_tokens=self._max_tokens,
            overlap_tokens=self._overlap_tokens,
        )
        return chunks

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fits(self, text: str, start: int, end: int, budget: int) -> bool:
        return self._counter.count(text[start:end]) <= budget

    def _split_span(
        self, text: str, start: int, end: int, separators: tuple[str, ...]
    ) -> list[_Span]:
        """Return chunk spans covering ``text[start:end]`` in order."""
        if self._fits(text, start, end, self._max_tokens):
            return [(start, end)]

        segment = text[start:end]
        chosen: str | None = None
        remaining: tuple[str, ...] = ()
        for i, separator in enumerate(separators):
            if separator == "" or separator in segment:
                chosen = separator
                remaining = separators[i + 1 :]
                break

        if chosen is None:
            self._log_oversized(text, start, end)
            return [(start, end)]

        spans: list[_Span] = []
        pending: list[_Span] = []
        pending_tokens: list[int] = []
        for piece_start, piece_end in self._cut(text, start, end, chosen):
            tokens = self._counter.count(text[piece_start:piece_end])
            if tokens <= self._max_tokens:
                pending.append((piece_start, piece_end))
                pending_tokens.append(tokens)
                continue

            if pending:
                spans.extend(self._merge(text, pending, pending_tokens))
                pending, pending_tokens = [], []
            if remaining:
                spans.extend(self._split_span(text, piece_start, piece_end, remaining))
            else:
                self._log_oversized(text, piece_start, piece_end)
                spans.append((piece_start, piece_end))

        if pending:
            spans.extend(self._merge(text, pending, pending_tokens))
        return spans

    @staticmethod
    def _cut(text: str, start: int, end: int, separator: str) -> list[_Span]:
        """Cut ``text[start:end]`` after each ``separator`` occurrence."""
        if separator == "":
            return [(i, i + 1) for i in range(start, end)]

        pieces: list[_Span] = []
        cursor = start
        while cursor < end:
            found = text.find(separator, cursor, end)
            if found == -1:
                pieces.append((cursor, end))
                break
            cut = found + len(separator)
            pieces.append((cursor, cut))
            cursor = cut
        return pieces

    def _merge(self, text: str, pieces: list[_Span], tokens: list[int]) -> list[_Span]:
        """Greedily merge contiguous pieces into overlapping windows.

        ``tokens`` holds each piece's own count.  Their running sums only
        estimate where a window ends, and every boundary is confirmed by
        counting the joined text, so each window costs a handful of counts
        rather than one per piece.
        """
        sums = [0, *accumulate(tokens)]
        last_index = len(pieces) - 1
        spans: list[_Span] = []
        first = known = 0

        while True:
            window_start = pieces[first][0]
            estimate = bisect_right(sums, sums[first] + self._max_tokens) - 2
            last = _last_true(
                lambda j: self._fits(text, window_start, pieces[j][1], self._max_tokens),
                known,
                last_index,
                estimate,
            )
            spans.append((window_start, pieces[last][1]))
            if last == last_index:
                return spans
            first = self._overlap_start(text, pieces, sums, first, last)
            # The carried tail plus the next piece was confirmed to fit.
            known = last + 1

    def _overlap_start(
        self, text: str, pieces: list[_Span], sums: list[int], first: int, last: int
    ) -> int:
        """Index of the first piece carried into the window after ``last``.

        The carried tail holds at most ``overlap_tokens`` and leaves room for
        ``pieces[last + 1]``.  ``last + 1`` means nothing is carried.
        """
        end = pieces[last][1]
        next_end = pieces[last + 1][1]

        def keeps(size: int) -> bool:
            if size == 0:
                return True
            tail_start = pieces[last + 1 - size][0]
            return self._fits(text, tail_start, end, self._overlap_tokens) and self._fits(
                text, tail_start, next_end, self._max_tokens
            )

        estimate = last + 1 - max(
            bisect_left(sums, sums[last + 1] - self._overlap_tokens),
            bisect_left(sums, sums[last + 2] - self._max_tokens),
        )
        return last + 1 - _last_true(keeps, 0, last - first, estimate)

    def _log_oversized(self, text: str, start: int, end: int) -> None:
        logger.warning(
            "oversized_chunk",
            start_offset=start,
            tokens=self._counter.count(text[start:end]),
            max_tokens=self._max_tokens,
        )


def _last_true(predicate: Callable[[int], bool], low: int, high: int, guess: int) -> int:
    """Return the largest index in ``[low, high]`` where ``predicate`` holds.

    ``predicate`` must hold at ``low`` and flip at most once, from true to
    false.  The search gallops outward from ``guess`` and then bisects, so a
    close guess settles in two or three calls.
    """
    if low >= high:
        return low
    guess = min(max(guess, low), high)

    if predicate(guess):
        good, step = guess, 1
        while True:
            if good == high:
                return good
            candidate = min(good + step, high)
            if not predicate(candidate):
                bad = candidate
                break
            good = candidate
            step *= 2
    else:
        bad, step = guess, 1
        while True:
            candidate = max(bad - step, low)
            if candidate == low or predicate(candidate):
                good = candidate
                break
            bad = candidate
            step *= 2

    while bad - good > 1:
        middle = (good + bad) // 2
        if predicate(middle):
            good = middle
        else:
            bad = middle
    return good
