"""Summarizer implementations."""

from docvector.providers.summarizer.llm_summarizer import LLMSummarizer

__all__ = ["LLMSummarizer"]
