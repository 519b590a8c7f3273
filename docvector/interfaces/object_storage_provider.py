"""Abstract base class for object storage of original uploads."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalObjectStorageProvider
# Located in: docvector/providers/storage/
class IObjectStorageProvider(ABC):
    """Stores uploaded bytes and returns a URL where they can be fetched."""

    @abstractmethod
    async def upload(self, data: bytes, name: str) -> str:
        """Store ``data`` under a name derived from ``name``; return its URL.

        Raises
        ------
        docvector.utils.errors.ObjectStorageError
            If the bytes cannot be stored.
        """

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Remove a previously uploaded object by the URL ``upload`` returned.

        Best-effort: returns ``False`` instead of raising when the object is
        already gone or cannot be removed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local_storage"``."""
