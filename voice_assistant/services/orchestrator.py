"""Pipeline orchestrator: transcription, refinement and answer stages.

Each stage is user-triggered and isolated: a failure is written to the
status line and recorded in ``SessionContext.failures``, earlier results
stay intact, and nothing is raised to the caller.

Every stage call remembers the cycle id it was dispatched in. When a new
recording starts before the response arrives, the response is discarded
instead of overwriting the new cycle's fields.

Usage::

    orchestrator = PipelineOrchestrator(context, stt, refiner, answerer)
    await orchestrator.transcribe(payload)
    await orchestrator.refine()
    await orchestrator.ask()
"""

import logging

from voice_assistant.core.exceptions import StageError, StageFailure
from voice_assistant.core.models import AudioPayload, PipelineState, Stage, StageState
from voice_assistant.services.llm.base import BaseLLM
from voice_assistant.services.session import SessionContext
from voice_assistant.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

REFINE_INSTRUCTION = (
    "Refine the following question to be more clear, concise, and suitable for an "
    "AI assistant. Focus on making it a direct query. Do not add any conversational "
    'filler. Just the refined question:\n\n"{transcript}"'
)

NO_AUDIO = (
    "No audio recorded from the tab. Please ensure audio is playing and you record "
    "for a sufficient duration."
)
TRANSCRIBING = "Sending tab audio for transcription..."
TRANSCRIPT_READY = "Transcription received. You can now refine it or get an AI answer."
NO_TRANSCRIPTION = "No transcription received."

REFINE_NEEDS_TRANSCRIPT = "Please transcribe audio first to refine a question."
REFINING = "Refining question with Gemini..."
REFINED_READY = "Question refined by Gemini! You can now get an AI answer."
NO_VALID_REFINEMENT = "Gemini did not return a valid refinement. Try again."

NOTHING_TO_ASK = "Please transcribe audio or refine a question first."
ASKING = "Sending question to AI..."
ANSWER_READY = "AI Answer received!"
NO_ANSWER = "No answer received from AI."


class PipelineOrchestrator:
    """Sequences the three remote stages for the current cycle.

    Args:
        context: Shared session state (results, status, cycle id).
        stt: Transcription service.
        refiner: Refinement service.
        answerer: Answer service.
        backend_url: Shown in the connectivity error message.
    """

    def __init__(
        self,
        context: SessionContext,
        stt: BaseSTT,
        refiner: BaseLLM,
        answerer: BaseLLM,
        backend_url: str = "",
    ) -> None:
        self._context = context
        self._stt = stt
        self._refiner = refiner
        self._answerer = answerer
        self._backend_url = backend_url

    @property
    def context(self) -> SessionContext:
        return self._context

    # -- availability (read by the presentation layer) --

    @property
    def can_refine(self) -> bool:
        return bool(self._context.transcript) and not self._context.status.is_busy()

    @property
    def can_ask(self) -> bool:
        ctx = self._context
        return bool(ctx.refined_question or ctx.transcript) and not ctx.status.is_busy()

    # -- cycle --

    def begin_cycle(self) -> int:
        """Start a new cycle: clear results and invalidate in-flight calls."""
        ctx = self._context
        ctx.cycle_id += 1
        ctx.clear_results()
        ctx.pipeline_state = PipelineState.idle
        ctx.status.reset_stages()
        logger.info("Pipeline cycle %d started", ctx.cycle_id)
        return ctx.cycle_id

    # -- stage 1 --

    async def transcribe(self, payload: AudioPayload) -> str | None:
        """Send the payload to the transcription service.

        Returns:
            The stored transcript, or None if the stage did not complete.
        """
        ctx = self._context
        if payload.size == 0:
            ctx.failures[Stage.transcribe] = StageFailure.empty_input
            ctx.status.set_stage(Stage.transcribe, StageState.failed)
            ctx.status.report(NO_AUDIO)
            logger.warning("Empty payload; transcription skipped")
            return None

        cycle = ctx.cycle_id
        self._enter(Stage.transcribe, PipelineState.transcribing, TRANSCRIBING)
        try:
            text = await self._stt.transcribe(payload)
        except StageError as exc:
            if self._is_stale(cycle, Stage.transcribe):
                return None
            if exc.kind is StageFailure.transport:
                message = (
                    f"Error: Could not connect to backend. Ensure backend is running at "
                    f"{self._backend_url} and check CORS."
                )
            else:
                message = f"Error during transcription: {exc.detail}. Please try again."
            self._fail(Stage.transcribe, exc, message)
            return None

        if self._is_stale(cycle, Stage.transcribe):
            return None
        ctx.transcript = text or NO_TRANSCRIPTION
        self._complete(Stage.transcribe, PipelineState.transcript_ready, TRANSCRIPT_READY)
        return ctx.transcript

    # -- stage 2 --

    async def refine(self) -> str | None:
        """Ask the refinement service for a clarified version of the transcript."""
        ctx = self._context
        transcript = ctx.transcript
        if not transcript:
            ctx.failures[Stage.refine] = StageFailure.empty_input
            ctx.status.report(REFINE_NEEDS_TRANSCRIPT)
            return None

        cycle = ctx.cycle_id
        ctx.refined_question = ""
        self._enter(Stage.refine, PipelineState.refining, REFINING)
        try:
            text = await self._refiner.generate(REFINE_INSTRUCTION.format(transcript=transcript))
        except StageError as exc:
            if self._is_stale(cycle, Stage.refine):
                return None
            if exc.kind is StageFailure.no_candidate:
                ctx.failures[Stage.refine] = exc.kind
                ctx.status.set_stage(Stage.refine, StageState.failed)
                ctx.pipeline_state = PipelineState.transcript_ready
                ctx.status.report(NO_VALID_REFINEMENT)
                return None
            self._fail(Stage.refine, exc, f"Error refining question: {exc.detail}.")
            return None

        if self._is_stale(cycle, Stage.refine):
            return None
        ctx.refined_question = text
        self._complete(Stage.refine, PipelineState.refined_ready, REFINED_READY)
        return text

    # -- stage 3 --

    async def ask(self) -> str | None:
        """Send the refined question (or, failing that, the transcript) for an answer."""
        ctx = self._context
        question = ctx.refined_question or ctx.transcript
        if not question:
            ctx.failures[Stage.answer] = StageFailure.empty_input
            ctx.status.report(NOTHING_TO_ASK)
            return None

        cycle = ctx.cycle_id
        ctx.answer = ""
        self._enter(Stage.answer, PipelineState.answering, ASKING)
        try:
            answer = await self._answerer.generate(question)
        except StageError as exc:
            if self._is_stale(cycle, Stage.answer):
                return None
            self._fail(Stage.answer, exc, f"Error getting AI answer: {exc.detail}. Please try again.")
            return None

        if self._is_stale(cycle, Stage.answer):
            return None
        ctx.answer = answer or NO_ANSWER
        self._complete(Stage.answer, PipelineState.answer_ready, ANSWER_READY)
        return ctx.answer

    # -- helpers --

    def _enter(self, stage: Stage, state: PipelineState, message: str) -> None:
        ctx = self._context
        ctx.failures.pop(stage, None)
        ctx.status.set_stage(stage, StageState.in_flight)
        ctx.pipeline_state = state
        ctx.status.report(message)

    def _complete(self, stage: Stage, state: PipelineState, message: str) -> None:
        ctx = self._context
        ctx.status.set_stage(stage, StageState.done)
        ctx.pipeline_state = state
        ctx.status.report(message)

    def _fail(self, stage: Stage, exc: StageError, message: str) -> None:
        ctx = self._context
        logger.warning("Stage %s failed (%s): %s", stage, exc.kind, exc.detail)
        ctx.failures[stage] = exc.kind
        ctx.status.set_stage(stage, StageState.failed)
        ctx.pipeline_state = PipelineState.failed
        ctx.status.report(message)

    def _is_stale(self, cycle: int, stage: Stage) -> bool:
        if cycle == self._context.cycle_id:
            return False
        logger.info(
            "Discarding %s response from cycle %d (current cycle %d)",
            stage,
            cycle,
            self._context.cycle_id,
        )
        return True
