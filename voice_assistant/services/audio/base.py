"""
Abstract media platform interfaces.

A platform hands out live audio sources (after whatever consent prompt it
needs) and creates recorders that push fixed-cadence chunks into a
``ChunkStream``. Implementations report failures as ``PlatformError`` using
browser DOMException names so the Source Acquirer can classify them.
"""

from abc import ABC, abstractmethod

from voice_assistant.services.audio.aggregator import ChunkStream


class AudioTrack(ABC):
    """One underlying audio-producing track of a source."""

    @property
    @abstractmethod
    def live(self) -> bool:
        """True until the track has been stopped or has ended."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the track. Must be idempotent."""


class AudioSource:
    """Handle to a live audio source made of one or more tracks."""

    def __init__(self, tracks: list[AudioTrack], label: str = "") -> None:
        self._tracks = tuple(tracks)
        self.label = label

    @property
    def tracks(self) -> tuple[AudioTrack, ...]:
        return self._tracks

    @property
    def is_live(self) -> bool:
        return any(track.live for track in self._tracks)

    def stop(self) -> None:
        """Stop every underlying track."""
        for track in self._tracks:
            track.stop()


class MediaRecorder(ABC):
    """Records a source into a ``ChunkStream`` at a fixed cadence."""

    @property
    @abstractmethod
    def mime_type(self) -> str:
        """Media type of the concatenated chunks."""

    @abstractmethod
    def start(self) -> None:
        """Begin emitting chunks.

        Raises:
            PlatformError: If the source cannot be recorded.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Flush buffered-but-undelivered data, then close the stream."""


class MediaPlatform(ABC):
    """Interface every capture backend must implement."""

    @abstractmethod
    async def get_display_media(self) -> AudioSource:
        """Request a shared audio source; may wait on user consent.

        Raises:
            PlatformError: On denial, missing device, or other failure.
        """

    @abstractmethod
    def create_recorder(
        self,
        source: AudioSource,
        stream: ChunkStream,
        timeslice_ms: int,
    ) -> MediaRecorder:
        """Create a recorder that writes ``source`` into ``stream``.

        Raises:
            PlatformError: If ``source`` cannot be recorded.
        """
