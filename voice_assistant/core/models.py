"""
Domain models shared by the capture controller, the pipeline orchestrator
and the remote service clients.

Audio values are frozen dataclasses (opaque bytes, never mutated); remote
response bodies are Pydantic v2 models so that missing fields parse to
``None`` instead of raising.
"""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


class CaptureState(StrEnum):
    """Recording lifecycle of the capture session controller."""

    no_source = "no_source"
    source_ready = "source_ready"
    recording = "recording"
    stopping = "stopping"


class PipelineState(StrEnum):
    """Progress of one cycle through the three remote stages."""

    idle = "idle"
    transcribing = "transcribing"
    transcript_ready = "transcript_ready"
    refining = "refining"
    refined_ready = "refined_ready"
    answering = "answering"
    answer_ready = "answer_ready"
    failed = "failed"


class Stage(StrEnum):
    """The three sequential remote operations."""

    transcribe = "transcribe"
    refine = "refine"
    answer = "answer"


class StageState(StrEnum):
    """Per-stage activity, replacing independent boolean loading flags."""

    idle = "idle"
    in_flight = "in_flight"
    done = "done"
    failed = "failed"


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AudioChunk:
    """One binary segment delivered by the recorder."""

    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AudioPayload:
    """The finalized recording handed to the transcription stage."""

    data: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def filename(self) -> str:
        """Upload filename derived from the declared media type."""
        extension = _MEDIA_EXTENSIONS.get(self.media_type.split(";")[0].strip(), "bin")
        return f"recording.{extension}"


_MEDIA_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}


# ---------------------------------------------------------------------------
# Remote service bodies
# ---------------------------------------------------------------------------


class ServiceErrorBody(BaseModel):
    """Optional JSON body returned with a non-success status."""

    message: str | None = None


class TranscriptionResponse(BaseModel):
    """POST /api/stt success body."""

    transcription: str | None = None


class AnswerRequest(BaseModel):
    """POST /api/openai request body."""

    question: str


class AnswerResponse(BaseModel):
    """POST /api/openai success body."""

    answer: str | None = None


class GeminiPart(BaseModel):
    text: str | None = None


class GeminiContent(BaseModel):
    role: str | None = None
    parts: list[GeminiPart] | None = None


class GeminiCandidate(BaseModel):
    content: GeminiContent | None = None


class GeminiResponse(BaseModel):
    """generateContent response; only the fields the refiner reads."""

    candidates: list[GeminiCandidate] | None = None

    def first_text(self) -> str | None:
        """Return ``candidates[0].content.parts[0].text`` or None."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text
