"""
Loopback capture platform backed by ``sounddevice`` (PortAudio).

Tab/window audio is captured from a loopback or monitor input device
(e.g. PulseAudio "Monitor of ..." sources, BlackHole, Stereo Mix). Frames
are chunked by ``PcmChunkRecorder`` into a streaming WAV recording.
"""

import asyncio
import logging
import threading

import numpy as np
import sounddevice as sd

from voice_assistant.core.config import get_settings
from voice_assistant.core.exceptions import PlatformError
from voice_assistant.services.audio.aggregator import ChunkStream
from voice_assistant.services.audio.base import AudioSource, MediaPlatform, MediaRecorder
from voice_assistant.services.audio.pcm import FrameSink, PcmChunkRecorder, PcmTrack

logger = logging.getLogger(__name__)


def _parse_device(device: str | int | None) -> str | int | None:
    if device is None or device == "":
        return None
    if isinstance(device, int):
        return device
    try:
        return int(device)
    except ValueError:
        return device


class InputStreamTrack(PcmTrack):
    """A running ``sd.InputStream``; frames go to the attached sink, if any.

    The track stops being live when PortAudio ends the stream on its own
    (device unplugged, host API error), not only after ``stop()``.
    """

    def __init__(self, device: str | int | None, sample_rate: int, channels: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._lock = threading.Lock()
        self._sink: FrameSink | None = None
        self._live = False
        try:
            self._stream = sd.InputStream(
                device=device,
                samplerate=sample_rate,
                channels=channels,
                dtype=np.float32,
                callback=self._audio_callback,
                finished_callback=self._on_finished,
            )
            self._stream.start()
        except sd.PortAudioError as exc:
            raise PlatformError("NotReadableError", str(exc)) from exc
        self._live = True

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for sounddevice stream (runs on the PortAudio thread)."""
        if status:
            logger.warning("Audio callback status: %s", status)
        with self._lock:
            sink = self._sink
        if sink is not None:
            sink(indata.copy())

    def _on_finished(self) -> None:
        if self._live:
            logger.warning("Capture stream ended unexpectedly")

    def attach(self, sink: FrameSink) -> None:
        with self._lock:
            self._sink = sink

    def detach(self) -> None:
        with self._lock:
            self._sink = None

    @property
    def live(self) -> bool:
        return self._live and self._stream.active

    def stop(self) -> None:
        if not self._live:
            return
        self._live = False
        self.detach()
        self._stream.stop()
        self._stream.close()


class LoopbackPlatform(MediaPlatform):
    """Capture platform that records a loopback/monitor input device.

    Args:
        device: Device name or index (falls back to settings; empty = default input).
        sample_rate: Capture sample rate in Hz.
        channels: Requested channel count (clamped to what the device offers).
    """

    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int | None = None,
        channels: int | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._device = _parse_device(
            device if device is not None else self._settings.capture_device
        )
        self._sample_rate = sample_rate or self._settings.capture_sample_rate
        self._channels = channels or self._settings.capture_channels

    async def get_display_media(self) -> AudioSource:
        track, name = await asyncio.to_thread(self._open_track)
        return AudioSource([track], label=name)

    def _open_track(self) -> tuple[InputStreamTrack, str]:
        try:
            info = sd.query_devices(self._device, kind="input")
        except (ValueError, sd.PortAudioError) as exc:
            raise PlatformError("NotFoundError", str(exc)) from exc

        channels = max(1, min(self._channels, int(info["max_input_channels"])))
        logger.info(
            "Opening capture device %s: %dHz, %dch",
            info["name"],
            self._sample_rate,
            channels,
        )
        return InputStreamTrack(self._device, self._sample_rate, channels), info["name"]

    def create_recorder(
        self,
        source: AudioSource,
        stream: ChunkStream,
        timeslice_ms: int,
    ) -> MediaRecorder:
        track = next(
            (t for t in source.tracks if isinstance(t, InputStreamTrack) and t.live),
            None,
        )
        if track is None:
            raise PlatformError("InvalidStateError", "No live input track to record from")
        return PcmChunkRecorder(track, stream, timeslice_ms)

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        devices = []
        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append({
                    "id": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "sample_rate": device["default_samplerate"],
                })
        return devices
