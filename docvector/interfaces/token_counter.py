"""Abstract base class for token counters."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: TiktokenTokenCounter, CharacterTokenCounter
# Located in: docvector/providers/tokenizer/
class ITokenCounter(ABC):
    """Counts provider-defined tokens in a string.

    Token counts are not additive across concatenation (a tokenizer may
    merge characters across a boundary), so callers recount joined text
    instead of summing the counts of its parts.
    """

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the number of tokens in ``text`` (deterministic, >= 0)."""

    @abstractmethod
    def get_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"tiktoken:cl100k_base"``."""
