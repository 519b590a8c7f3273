"""LLM-backed summarizer with asynchronous-processing support.

Images are captioned with one vision call.  Documents are uploaded to the
LLM provider, which processes them in the background; the summarizer polls
the file's state at a fixed interval until it leaves ``processing``, then
asks for a summary.  A ``failed`` state, a polling timeout, or any provider
error surfaces as :class:`~docvector.utils.errors.SummarizationError`.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from docvector.interfaces.llm_provider import ILLMProvider, RemoteFile, RemoteFileState
from docvector.interfaces.summarizer import ISummarizer
from docvector.utils.errors import LLMError, SummarizationError

logger = structlog.get_logger(logger_name=__name__)

CAPTION_PROMPT = "Caption this image."
SUMMARY_PROMPT = "Summarize this document"


class LLMSummarizer(ISummarizer):
    """Summarizes documents and captions images through an :class:`ILLMProvider`.

    Parameters
    ----------
    llm:
        Provider used for vision and file analysis.
    poll_interval:
        Seconds between processing-state checks (default 5).
    timeout:
        Give up waiting for processing after this many seconds.
    http_client:
        Client used to fetch uploads given only by URL.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        poll_interval: float = 5.0,
        timeout: float = 600.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if poll_interval < 0:
            msg = f"poll_interval must be >= 0, got {poll_interval}"
            raise ValueError(msg)
        self._llm = llm
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._http_client = http_client

    async def summarize(
        self,
        data: bytes | None,
        mime_type: str,
        *,
        source_url: str | None = None,
        display_name: str = "",
    ) -> str:
        if data is None:
            if not source_url:
                raise SummarizationError(
                    message="Neither document bytes nor a source URL were supplied",
                    provider_name=self.get_provider_name(),
                )
            data = await self._fetch(source_url)

        try:
            if mime_type.startswith("image/"):
                result = await self._caption(data)
            else:
                result = await self._summarize_document(data, mime_type, display_name)
        except LLMError as exc:
            raise SummarizationError(
                message=exc.message, provider_name=exc.provider_name
            ) from exc

        if not result.strip():
            raise SummarizationError(
                message="Provider returned an empty analysis",
                provider_name=self.get_provider_name(),
            )
        return result

    def get_provider_name(self) -> str:
        return f"llm_summarizer:{self._llm.get_provider_name()}"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _caption(self, image_bytes: bytes) -> str:
        if not self._llm.supports_vision():
            raise SummarizationError(
                message="LLM provider has no vision support for image captioning",
                provider_name=self.get_provider_name(),
            )
        return await self._llm.vision_extract(image_bytes, CAPTION_PROMPT)

    async def _summarize_document(self, data: bytes, mime_type: str, display_name: str) -> str:
        remote = await self._llm.upload_file(data, mime_type, display_name)
        remote = await self._wait_until_processed(remote)
        if remote.state == RemoteFileState.FAILED:
            raise SummarizationError(
                message=f"Provider failed to process uploaded file {remote.file_id}",
                provider_name=self.get_provider_name(),
            )
        return await self._llm.analyze_file(remote, SUMMARY_PROMPT)

    async def _wait_until_processed(self, remote: RemoteFile) -> RemoteFile:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        polls = 0
        while remote.state == RemoteFileState.PROCESSING:
            if loop.time() >= deadline:
                raise SummarizationError(
                    message=(
                        f"File {remote.file_id} still processing after "
                        f"{self._timeout:.0f}s"
                    ),
                    provider_name=self.get_provider_name(),
                )
            await asyncio.sleep(self._poll_interval)
            remote = await self._llm.get_file(remote.file_id)
            polls += 1
            logger.debug("summarizer_poll", file_id=remote.file_id, state=remote.state.value)

        logger.info(
            "summarizer_file_ready",
            file_id=remote.file_id,
            state=remote.state.value,
            polls=polls,
        )
        return remote

    async def _fetch(self, url: str) -> bytes:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SummarizationError(
                message=f"Could not fetch {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response.content
