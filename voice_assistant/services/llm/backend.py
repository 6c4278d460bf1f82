"""Answer generation through the backend proxy's ``POST /api/openai`` endpoint."""

import logging

import httpx

from voice_assistant.core.config import get_settings
from voice_assistant.core.models import AnswerRequest, AnswerResponse
from voice_assistant.services.http_client import ServiceClient
from voice_assistant.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class BackendAnswerLLM(BaseLLM):
    """Sends ``{"question": ...}`` and returns the ``answer`` field."""

    def __init__(
        self,
        base_url: str | None = None,
        path: str | None = None,
        timeout: float | None = None,
        settings=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._path = path or settings.answer_path
        self._http = ServiceClient(
            base_url or settings.backend_url,
            service_name="OpenAI",
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def generate(self, prompt: str, **kwargs) -> str:
        logger.info("Requesting answer for a %d-character question", len(prompt))
        result = await self._http.post(
            self._path,
            AnswerResponse,
            json=AnswerRequest(question=prompt).model_dump(),
        )
        return result.answer or ""

    async def aclose(self) -> None:
        await self._http.aclose()
