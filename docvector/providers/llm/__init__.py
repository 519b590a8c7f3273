"""LLM provider implementations.

OpenAILLMProvider talks to OpenAI or any OpenAI-compatible endpoint and
supplies the vision and document-analysis calls behind the summarizer.
"""

from docvector.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
