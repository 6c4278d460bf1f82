"""Transcription through the backend proxy's ``POST /api/stt`` endpoint."""

import logging

import httpx

from voice_assistant.core.config import get_settings
from voice_assistant.core.models import AudioPayload, TranscriptionResponse
from voice_assistant.services.http_client import ServiceClient
from voice_assistant.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)


class RemoteSTT(BaseSTT):
    """Uploads the recording as multipart field ``audio``.

    Args:
        base_url: Backend URL (falls back to settings).
        path: Endpoint path (falls back to settings).
        timeout: Request timeout in seconds (falls back to settings).
        transport: Optional httpx transport, for tests.
    """

    def __init__(
        self,
        base_url: str | None = None,
        path: str | None = None,
        timeout: float | None = None,
        settings=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._path = path or self._settings.stt_path
        self._http = ServiceClient(
            base_url or self._settings.backend_url,
            service_name="STT",
            timeout=timeout or self._settings.request_timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._http.base_url

    async def transcribe(self, payload: AudioPayload) -> str:
        logger.info("Uploading %d bytes (%s) for transcription", payload.size, payload.media_type)
        result = await self._http.post(
            self._path,
            TranscriptionResponse,
            files={"audio": (payload.filename, payload.data, payload.media_type)},
        )
        return result.transcription or ""

    async def aclose(self) -> None:
        await self._http.aclose()
