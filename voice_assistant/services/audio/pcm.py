"""
PCM chunking shared by capture backends that deliver raw frames.

A ``PcmTrack`` pushes float32 frame blocks to one attached sink from its own
thread. ``PcmChunkRecorder`` converts them to 16-bit PCM and emits one chunk
per timeslice; the first chunk carries a streaming WAV header with unknown
sizes so that the concatenated recording is a playable file.
"""

import logging
import struct
import threading
from abc import abstractmethod
from collections.abc import Callable

import numpy as np

from voice_assistant.core.exceptions import PlatformError
from voice_assistant.services.audio.aggregator import ChunkStream
from voice_assistant.services.audio.base import AudioTrack, MediaRecorder

logger = logging.getLogger(__name__)

WAV_MIME_TYPE = "audio/wav"
SAMPLE_WIDTH = 2  # int16

_UNKNOWN_SIZE = 0xFFFFFFFF

FrameSink = Callable[[np.ndarray], None]


def streaming_wav_header(sample_rate: int, channels: int, sample_width: int = SAMPLE_WIDTH) -> bytes:
    """Build a 44-byte PCM WAV header whose RIFF/data sizes are unknown."""
    block_align = channels * sample_width
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        _UNKNOWN_SIZE,
        b"WAVE",
        b"fmt ",
        16,
        1,  # PCM
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        sample_width * 8,
        b"data",
        _UNKNOWN_SIZE,
    )


def float_to_pcm16(frames: np.ndarray) -> bytes:
    """Convert float32 frames in [-1, 1] to little-endian int16 bytes."""
    pcm = (frames * 32767).clip(-32768, 32767).astype("<i2")
    return pcm.tobytes()


class PcmTrack(AudioTrack):
    """A live track that hands float32 frame blocks to an attached sink."""

    sample_rate: int
    channels: int

    @abstractmethod
    def attach(self, sink: FrameSink) -> None:
        """Route subsequent frame blocks to ``sink``."""

    @abstractmethod
    def detach(self) -> None:
        """Stop routing frames; later blocks are dropped."""


class PcmChunkRecorder(MediaRecorder):
    """Slices a track's PCM into ``timeslice_ms`` chunks.

    Chunks are handed to the event loop with ``call_soon_threadsafe``, and
    the final flush goes through the same queue so delivery order is kept.
    """

    def __init__(self, track: PcmTrack, stream: ChunkStream, timeslice_ms: int) -> None:
        self._track = track
        self._stream = stream
        self._slice_bytes = max(
            SAMPLE_WIDTH * track.channels,
            int(track.sample_rate * timeslice_ms / 1000) * SAMPLE_WIDTH * track.channels,
        )
        self._header = streaming_wav_header(track.sample_rate, track.channels)
        self._header_sent = False
        self._pending = bytearray()
        self._lock = threading.Lock()
        self._recording = False

    @property
    def mime_type(self) -> str:
        return WAV_MIME_TYPE

    def start(self) -> None:
        if not self._track.live:
            raise PlatformError("InvalidStateError", "Audio track is no longer live")
        self._recording = True
        self._track.attach(self._on_frames)
        logger.info("Recorder started: %d bytes per chunk", self._slice_bytes)

    def _on_frames(self, frames: np.ndarray) -> None:
        data = float_to_pcm16(frames)
        with self._lock:
            if not self._recording:
                return
            self._pending.extend(data)
            while len(self._pending) >= self._slice_bytes:
                self._stream.put_threadsafe(self._take(self._slice_bytes))

    def _take(self, size: int) -> bytes:
        chunk = bytes(self._pending[:size])
        del self._pending[:size]
        if not self._header_sent:
            self._header_sent = True
            chunk = self._header + chunk
        return chunk

    async def stop(self) -> None:
        with self._lock:
            if not self._recording:
                return
            self._recording = False
            self._track.detach()
            if self._pending:
                self._stream.put_threadsafe(self._take(len(self._pending)))
            self._stream.close_threadsafe()
        logger.info("Recorder stopped")
