"""tiktoken-backed token counter.

Counts tokens with the BPE encoding of the configured embedding model
(``cl100k_base`` for ``text-embedding-3-small``).  Models tiktoken does
not know, such as OpenAI-compatible third-party models, fall back to
``cl100k_base``.
"""

from __future__ import annotations

import structlog
import tiktoken

from docvector.interfaces.token_counter import ITokenCounter

logger = structlog.get_logger(logger_name=__name__)

_FALLBACK_ENCODING = "cl100k_base"


class TiktokenTokenCounter(ITokenCounter):
    """Token counter using the tiktoken encoding for ``model``."""

    def __init__(self, model: str = "text-embedding-3-small") -> None:
        try:
            self._encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.info("tiktoken_unknown_model", model=model, encoding=_FALLBACK_ENCODING)
            self._encoding = tiktoken.get_encoding(_FALLBACK_ENCODING)

    def count(self, text: str) -> int:
        if not text:
            return 0
        # disallowed_special=() so user text containing "<|endoftext|>" is
        # counted as ordinary characters instead of raising.
        return len(self._encoding.encode(text, disallowed_special=()))

    def get_name(self) -> str:
        return f"tiktoken:{self._encoding.name}"
