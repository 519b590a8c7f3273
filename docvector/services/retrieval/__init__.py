"""Similarity retrieval over stored embedding records."""

from docvector.services.retrieval.retrieval_service import RetrievalService

__all__ = ["RetrievalService"]
