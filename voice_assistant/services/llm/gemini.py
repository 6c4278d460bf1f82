"""
Gemini LLM provider implementation.

Calls the ``generateContent`` REST endpoint directly over httpx with a
single user turn. A response without a usable candidate is reported as
``StageError(no_candidate)`` so callers can treat it as a soft failure.
"""

import logging

import httpx

from voice_assistant.core.config import get_settings
from voice_assistant.core.exceptions import StageError, StageFailure
from voice_assistant.core.models import GeminiResponse
from voice_assistant.services.http_client import ServiceClient
from voice_assistant.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """Gemini generateContent provider.

    Args:
        api_key: API key sent as the ``key`` query parameter.
        model: Model name, e.g. "gemini-2.0-flash".
        base_url: API root up to the version segment.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, for tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        settings=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._http = ServiceClient(
            base_url or settings.gemini_base_url,
            service_name="Gemini",
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def generate(self, prompt: str, **kwargs) -> str:
        """Send ``prompt`` as one user turn and return the first candidate's text."""
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        result = await self._http.post(
            f"/models/{self._model}:generateContent",
            GeminiResponse,
            json=body,
            params={"key": self._api_key},
        )
        text = result.first_text()
        if not text:
            logger.info("Gemini response contained no usable candidate")
            raise StageError(StageFailure.no_candidate, "Gemini returned no candidate text")
        return text

    async def aclose(self) -> None:
        await self._http.aclose()
