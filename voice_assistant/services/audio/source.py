"""Source acquisition: obtains, holds and releases the live audio source."""

import logging

from voice_assistant.core.exceptions import AcquisitionError, AcquisitionFailure, PlatformError
from voice_assistant.services.audio.base import AudioSource, MediaPlatform

logger = logging.getLogger(__name__)


def classify_platform_error(exc: PlatformError) -> AcquisitionFailure:
    """Map a platform failure name onto an acquisition failure reason."""
    if exc.name == "NotAllowedError":
        if "permissions policy" in exc.message.lower():
            return AcquisitionFailure.policy_blocked
        return AcquisitionFailure.denied
    if exc.name == "NotFoundError":
        return AcquisitionFailure.not_found
    return AcquisitionFailure.unknown


class SourceAcquirer:
    """Owns the single audio source handle.

    Args:
        platform: The capture backend to request sources from.
    """

    def __init__(self, platform: MediaPlatform) -> None:
        self._platform = platform
        self._source: AudioSource | None = None

    @property
    def source(self) -> AudioSource | None:
        return self._source

    @property
    def has_live_source(self) -> bool:
        return self._source is not None and self._source.is_live

    async def acquire(self) -> AudioSource:
        """Request a new source, releasing any previously held one.

        Raises:
            AcquisitionError: With the classified failure reason.
        """
        self.release()
        try:
            source = await self._platform.get_display_media()
        except PlatformError as exc:
            reason = classify_platform_error(exc)
            logger.warning("Audio source acquisition failed (%s): %s", reason, exc.detail)
            raise AcquisitionError(reason, detail=exc.detail) from exc
        except Exception as exc:
            logger.exception("Unexpected error acquiring audio source")
            raise AcquisitionError(AcquisitionFailure.unknown, detail=str(exc)) from exc

        self._source = source
        logger.info("Audio source acquired: %s", source.label or "<unnamed>")
        return source

    def release(self) -> None:
        """Stop every track of the held source. No-op without a source."""
        if self._source is None:
            return
        source = self._source
        self._source = None
        source.stop()
        logger.info("Audio source released: %s", source.label or "<unnamed>")
