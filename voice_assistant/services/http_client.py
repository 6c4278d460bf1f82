"""
Async HTTP client shared by the remote stage services.

Wraps ``httpx.AsyncClient`` and translates every failure into a
``StageError`` so the orchestrator only has to handle one exception type.
"""

import logging

import httpx
from pydantic import BaseModel, ValidationError

from voice_assistant.core.exceptions import StageError, StageFailure

logger = logging.getLogger(__name__)


class _ErrorDetail(BaseModel):
    message: str | None = None


class _ErrorBody(BaseModel):
    """Either ``{"message": ...}`` (backend) or ``{"error": {"message": ...}}`` (Google)."""

    message: str | None = None
    error: _ErrorDetail | None = None


class ServiceClient:
    """Thin async wrapper around httpx for one remote service.

    Args:
        base_url: Base URL of the service.
        service_name: Label used in error messages ("STT", "Gemini", "OpenAI").
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        service_name: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_name = service_name
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request, mapping failures to ``StageError``.

        Raises:
            StageError: ``transport`` on connection or network errors;
                ``timeout`` when the service accepted the connection but did not
                answer in time;
                ``non_success_response`` on any non-2xx status.
        """
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except (httpx.ConnectError, httpx.ConnectTimeout):
            raise StageError(
                StageFailure.transport,
                f"Could not connect to {self._service_name} service at {self._base_url}",
            ) from None
        except httpx.TimeoutException:
            raise StageError(
                StageFailure.timeout,
                f"{self._service_name} request timed out",
            ) from None
        except httpx.HTTPStatusError as exc:
            message = self._error_message(exc.response)
            raise StageError(
                StageFailure.non_success_response,
                f"{self._service_name} API error: {exc.response.status_code} - {message}",
                status_code=exc.response.status_code,
            ) from None
        except httpx.HTTPError as exc:
            raise StageError(StageFailure.transport, f"Network error: {exc}") from None

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """Service-reported message, falling back to the reason phrase."""
        try:
            body = _ErrorBody.model_validate(resp.json())
        except ValueError:
            return resp.reason_phrase
        if body.message:
            return body.message
        if body.error is not None and body.error.message:
            return body.error.message
        return resp.reason_phrase

    async def post(self, path: str, response_model: type[BaseModel], **kwargs) -> BaseModel:
        """POST and validate the JSON body against ``response_model``."""
        resp = await self._request("POST", path, **kwargs)
        try:
            return response_model.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("%s returned an unreadable body: %s", self._service_name, exc)
            raise StageError(
                StageFailure.non_success_response,
                f"{self._service_name} API error: {resp.status_code} - unexpected response body",
                status_code=resp.status_code,
            ) from None

    async def aclose(self) -> None:
        await self._client.aclose()
