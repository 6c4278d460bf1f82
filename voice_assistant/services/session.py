"""The owned state of the one capture/pipeline instance."""

from dataclasses import dataclass, field

from voice_assistant.core.exceptions import StageFailure
from voice_assistant.core.models import CaptureState, PipelineState, Stage
from voice_assistant.core.status import StatusReporter
from voice_assistant.services.audio.aggregator import ChunkAggregator
from voice_assistant.services.audio.base import AudioSource


@dataclass
class SessionContext:
    """Everything the controller and orchestrator mutate, in one place.

    Both components receive the same instance; all mutations happen on the
    event loop thread.
    """

    status: StatusReporter = field(default_factory=StatusReporter)
    aggregator: ChunkAggregator = field(default_factory=ChunkAggregator)
    source: AudioSource | None = None
    capture_state: CaptureState = CaptureState.no_source
    pipeline_state: PipelineState = PipelineState.idle
    cycle_id: int = 0
    transcript: str = ""
    refined_question: str = ""
    answer: str = ""
    failures: dict[Stage, StageFailure] = field(default_factory=dict)

    def clear_results(self) -> None:
        self.transcript = ""
        self.refined_question = ""
        self.answer = ""
        self.failures.clear()
