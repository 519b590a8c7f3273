"""Abstract base class for LLM service providers.

The ingestion pipeline uses an LLM for two kinds of analysis: captioning
images through a vision call, and summarizing whole documents that are
first uploaded to the provider and processed asynchronously there.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class RemoteFileState(str, Enum):
    """Processing state of a document uploaded to an LLM provider."""

    PROCESSING = "processing"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class RemoteFile:
    """Handle to a document uploaded to an LLM provider."""

    file_id: str
    state: RemoteFileState
    mime_type: str = ""
    display_name: str = ""


# Concrete implementation: OpenAILLMProvider
# Located in: docvector/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used for document and image analysis."""

    @abstractmethod
    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        """Analyse an image with a vision-capable model.

        Raises
        ------
        docvector.utils.errors.LLMError
            If vision is unsupported or the call fails.
        """

    @abstractmethod
    async def upload_file(self, data: bytes, mime_type: str, display_name: str) -> RemoteFile:
        """Upload a document for later analysis and return its handle."""

    @abstractmethod
    async def get_file(self, file_id: str) -> RemoteFile:
        """Fetch the current processing state of an uploaded document."""

    @abstractmethod
    async def analyze_file(self, remote_file: RemoteFile, prompt: str) -> str:
        """Run ``prompt`` against an uploaded document that is ACTIVE."""

    @abstractmethod
    def supports_vision(self) -> bool:
        """Return ``True`` if :meth:`vision_extract` can be used."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
