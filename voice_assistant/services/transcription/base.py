"""
Abstract base class for speech-to-text providers.
"""

from abc import ABC, abstractmethod

from voice_assistant.core.models import AudioPayload


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, payload: AudioPayload) -> str:
        """Transcribe a finalized recording.

        Args:
            payload: The concatenated recording with its media type.

        Returns:
            The transcript text (may be empty if the service returned none).

        Raises:
            StageError: On transport or non-success responses.
        """

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
