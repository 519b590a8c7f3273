"""Object storage implementations for original uploads."""

from docvector.providers.storage.local_storage_provider import LocalObjectStorageProvider

__all__ = ["LocalObjectStorageProvider"]
