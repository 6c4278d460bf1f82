"""Shared pytest fixtures for the voice assistant test suite.

Provides an in-memory media platform (no audio hardware needed), mock
STT/LLM providers, and a wired-up session context, orchestrator and
capture controller.
"""

from unittest.mock import AsyncMock

import pytest

from voice_assistant.core.exceptions import PlatformError
from voice_assistant.services.audio.aggregator import ChunkStream
from voice_assistant.services.audio.base import (
    AudioSource,
    AudioTrack,
    MediaPlatform,
    MediaRecorder,
)
from voice_assistant.services.audio.source import SourceAcquirer
from voice_assistant.services.capture import CaptureSessionController
from voice_assistant.services.llm.base import BaseLLM
from voice_assistant.services.orchestrator import PipelineOrchestrator
from voice_assistant.services.session import SessionContext
from voice_assistant.services.transcription.base import BaseSTT

BACKEND_URL = "http://backend.test"

# ---------------------------------------------------------------------------
# Fake platform
# ---------------------------------------------------------------------------


class FakeTrack(AudioTrack):
    def __init__(self) -> None:
        self._live = True
        self.stop_calls = 0

    @property
    def live(self) -> bool:
        return self._live

    def stop(self) -> None:
        self.stop_calls += 1
        self._live = False


class FakeRecorder(MediaRecorder):
    """Recorder whose chunks are pushed by the test via ``emit``."""

    def __init__(self, stream: ChunkStream, mime_type: str = "audio/webm") -> None:
        self.stream = stream
        self._mime_type = mime_type
        self.started = False
        self.stopped = False
        self.flush_on_stop: list[bytes] = []

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def start(self) -> None:
        self.started = True

    def emit(self, data: bytes) -> None:
        self.stream.put(data)

    async def stop(self) -> None:
        self.stopped = True
        for data in self.flush_on_stop:
            self.stream.put(data)
        self.stream.close()


class FakePlatform(MediaPlatform):
    """In-memory platform.

    ``acquire_errors`` is consumed one item per ``get_display_media`` call;
    a ``None`` item (or an empty list) means success.
    """

    def __init__(self) -> None:
        self.acquire_errors: list[Exception | None] = []
        self.recorder_error: PlatformError | None = None
        self.sources: list[AudioSource] = []
        self.recorders: list[FakeRecorder] = []
        self.timeslices: list[int] = []

    async def get_display_media(self) -> AudioSource:
        if self.acquire_errors:
            error = self.acquire_errors.pop(0)
            if error is not None:
                raise error
        source = AudioSource([FakeTrack()], label="fake tab")
        self.sources.append(source)
        return source

    def create_recorder(self, source, stream, timeslice_ms):
        if self.recorder_error is not None:
            raise self.recorder_error
        recorder = FakeRecorder(stream)
        self.recorders.append(recorder)
        self.timeslices.append(timeslice_ms)
        return recorder


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def context():
    return SessionContext()


@pytest.fixture
def mock_stt():
    """Mock STT provider returning "hello"."""
    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = "hello"
    return stt


@pytest.fixture
def mock_refiner():
    """Mock refinement provider."""
    llm = AsyncMock(spec=BaseLLM)
    llm.generate.return_value = "What is the capital of France?"
    return llm


@pytest.fixture
def mock_answerer():
    """Mock answer provider."""
    llm = AsyncMock(spec=BaseLLM)
    llm.generate.return_value = "Paris."
    return llm


@pytest.fixture
def backend_url():
    return BACKEND_URL


@pytest.fixture
def orchestrator(context, mock_stt, mock_refiner, mock_answerer, backend_url):
    return PipelineOrchestrator(
        context,
        stt=mock_stt,
        refiner=mock_refiner,
        answerer=mock_answerer,
        backend_url=backend_url,
    )


@pytest.fixture
def acquirer(platform):
    return SourceAcquirer(platform)


@pytest.fixture
def controller(context, acquirer, platform, orchestrator):
    return CaptureSessionController(
        context,
        acquirer=acquirer,
        platform=platform,
        orchestrator=orchestrator,
        chunk_interval_ms=1000,
    )
