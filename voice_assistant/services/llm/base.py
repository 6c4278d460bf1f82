"""
Abstract base class for text generation providers.

Both the refinement service (Gemini) and the answer service (backend proxy
to OpenAI) implement this interface, so the orchestrator does not depend on
any provider's wire format.
"""

from abc import ABC, abstractmethod


class BaseLLM(ABC):
    """Interface that every LLM provider must implement."""

    @abstractmethod
    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response.

        Args:
            prompt: The prompt or question to send to the model.
            **kwargs: Provider-specific options.

        Returns:
            The model's text response (may be empty).

        Raises:
            StageError: ``transport`` / ``non_success_response`` on failure,
                ``no_candidate`` when a well-formed response carries no text.
        """

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
