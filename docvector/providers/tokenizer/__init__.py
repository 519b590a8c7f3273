"""Token counter implementations.

Two implementations of ITokenCounter:
    1. TiktokenTokenCounter   - the embedding model's real BPE encoding.
       Used in production so chunk and batch budgets match what the
       provider bills and enforces.
    2. CharacterTokenCounter  - one token per character.  Deterministic and
       dependency-free; used by tests and offline dry runs.
"""

from docvector.providers.tokenizer.character_counter import CharacterTokenCounter
from docvector.providers.tokenizer.tiktoken_counter import TiktokenTokenCounter

__all__ = ["CharacterTokenCounter", "TiktokenTokenCounter"]
