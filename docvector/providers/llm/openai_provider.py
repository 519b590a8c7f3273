"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider` for
the two analyses ingestion needs: image captioning through a vision chat
call, and document summarization through the Files API (upload, wait for
processing, then reference the file from a chat call).

When a custom ``openai_base_url`` is configured the client points at that
OpenAI-compatible endpoint instead.
"""

from __future__ import annotations

import base64

import openai
import structlog

from docvector.config.settings import Settings
from docvector.interfaces.llm_provider import ILLMProvider, RemoteFile, RemoteFileState
from docvector.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

# Files API status → processing state.  "uploaded" means the bytes arrived
# but the file is not yet usable.
_FILE_STATES: dict[str, RemoteFileState] = {
    "uploaded": RemoteFileState.PROCESSING,
    "processed": RemoteFileState.ACTIVE,
    "error": RemoteFileState.FAILED,
}


def _detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes.

    PNG starts with: 89 50 4E 47 0D 0A 1A 0A
    WEBP starts with: RIFF....WEBP
    JPEG starts with: FF D8
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    return "image/jpeg"


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible API.

    Uses ``gpt-4o`` for both captioning and document analysis unless
    ``openai_vision_model`` overrides it.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(120.0, connect=10.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_vision_model or "gpt-4o"
        # Custom endpoints only get vision when a vision model is named explicitly.
        self._has_vision = bool(settings.openai_vision_model) or not settings.openai_base_url
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        """Caption or describe an image with the configured vision model."""
        if not self._has_vision:
            raise LLMError(
                message="Vision not supported by this provider configuration",
                provider_name=self.get_provider_name(),
            )
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        media_type = _detect_media_type(image_bytes)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{media_type};base64,{b64}"},
                            },
                        ],
                    }
                ],
                max_tokens=4000,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} vision API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} vision returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_vision_extract",
            model=self._model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    async def upload_file(self, data: bytes, mime_type: str, display_name: str) -> RemoteFile:
        try:
            uploaded = await self._client.files.create(
                file=(display_name or "document", data, mime_type),
                purpose="user_data",
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} file upload error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info(
            "openai_file_uploaded",
            file_id=uploaded.id,
            status=uploaded.status,
            bytes=len(data),
        )
        return self._to_remote_file(uploaded, mime_type)

    async def get_file(self, file_id: str) -> RemoteFile:
        try:
            retrieved = await self._client.files.retrieve(file_id)
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} file status error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return self._to_remote_file(retrieved)

    async def analyze_file(self, remote_file: RemoteFile, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "file", "file": {"file_id": remote_file.file_id}},
                        ],
                    }
                ],
                max_tokens=4000,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} document analysis error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} document analysis returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_file_analyzed",
            file_id=remote_file.file_id,
            model=self._model,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def supports_vision(self) -> bool:
        return self._has_vision

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_remote_file(file_object, mime_type: str = "") -> RemoteFile:  # noqa: ANN001
        return RemoteFile(
            file_id=file_object.id,
            state=_FILE_STATES.get(file_object.status, RemoteFileState.PROCESSING),
            mime_type=mime_type,
            display_name=file_object.filename or "",
        )
