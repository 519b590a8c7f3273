"""Character-count token counter."""

from __future__ import annotations

from docvector.interfaces.token_counter import ITokenCounter


class CharacterTokenCounter(ITokenCounter):
    """Counts one token per character."""

    def count(self, text: str) -> int:
        return len(text)

    def get_name(self) -> str:
        return "characters"
