"""Capture session controller: the recording lifecycle state machine.

States: no_source -> source_ready -> recording -> stopping -> source_ready

``start``/``stop`` are idempotent outside their valid states. Stopping a
recording flushes the recorder, finalizes the buffered chunks into one
payload and hands it to the pipeline orchestrator exactly once.
"""

import asyncio
import contextlib
import logging

from voice_assistant.core.config import get_settings
from voice_assistant.core.exceptions import (
    AcquisitionError,
    AcquisitionFailure,
    PlatformError,
    StartError,
    StartFailure,
)
from voice_assistant.core.models import CaptureState, Stage
from voice_assistant.services.audio.aggregator import ChunkStream
from voice_assistant.services.audio.base import MediaPlatform, MediaRecorder
from voice_assistant.services.audio.source import SourceAcquirer
from voice_assistant.services.orchestrator import PipelineOrchestrator
from voice_assistant.services.session import SessionContext

logger = logging.getLogger(__name__)

SOURCE_READY = "Tab/Window audio capture ready. Select a tab/window to share its audio."
ACQUISITION_MESSAGES = {
    AcquisitionFailure.policy_blocked: (
        "Tab/Window audio capture is blocked by browser permissions policy. "
        "Try running this app in a standalone browser tab."
    ),
    AcquisitionFailure.denied: (
        "Tab/Window audio capture denied. Please allow access in browser settings "
        "(click lock icon in address bar)."
    ),
    AcquisitionFailure.not_found: (
        "No suitable audio source found. Ensure a tab/window is available for capture."
    ),
    AcquisitionFailure.unknown: "Failed to get audio stream. See the log for details.",
}
REACQUIRING = "Audio stream not available. Attempting to re-acquire..."
REACQUIRE_FAILED = (
    "Cannot start recording: Failed to acquire audio stream. Check permissions and the log."
)
RECORDING = "Recording tab/window audio..."
RECORDER_FAILED = "Error starting recording. Ensure a tab is selected for audio sharing."
PROCESSING = "Processing tab audio..."
STOP_FAILED = "Error processing tab audio. Please try recording again."
RELEASED = "Audio capture released."


class CaptureSessionController:
    """Drives acquisition, recording and payload hand-off.

    Args:
        context: Shared session state.
        acquirer: Holds the audio source.
        platform: Creates recorders for the held source.
        orchestrator: Receives the finalized payload.
        chunk_interval_ms: Chunk cadence (falls back to settings).
    """

    def __init__(
        self,
        context: SessionContext,
        acquirer: SourceAcquirer,
        platform: MediaPlatform,
        orchestrator: PipelineOrchestrator,
        chunk_interval_ms: int | None = None,
    ) -> None:
        self._context = context
        self._acquirer = acquirer
        self._platform = platform
        self._orchestrator = orchestrator
        self._interval_ms = chunk_interval_ms or get_settings().chunk_interval_ms
        self._recorder: MediaRecorder | None = None
        self._stream: ChunkStream | None = None
        self._consumer: asyncio.Task | None = None

    @property
    def state(self) -> CaptureState:
        return self._context.capture_state

    @property
    def can_start(self) -> bool:
        return self.state in (
            CaptureState.no_source,
            CaptureState.source_ready,
        ) and not self._context.status.is_busy(Stage.transcribe)

    @property
    def can_stop(self) -> bool:
        return self.state is CaptureState.recording

    def _set_state(self, state: CaptureState) -> None:
        if state is not self._context.capture_state:
            logger.info("Capture state: %s -> %s", self._context.capture_state, state)
        self._context.capture_state = state

    def _source_is_live(self) -> bool:
        source = self._context.source
        return source is not None and source.is_live

    async def _acquire(self) -> None:
        source = await self._acquirer.acquire()
        self._context.source = source
        self._set_state(CaptureState.source_ready)

    # -- lifecycle --

    async def initialize(self) -> bool:
        """Acquire the audio source once at startup. Returns True on success."""
        try:
            await self._acquire()
        except AcquisitionError as exc:
            self._context.source = None
            self._set_state(CaptureState.no_source)
            self._context.status.report(ACQUISITION_MESSAGES[exc.reason])
            return False
        self._context.status.report(SOURCE_READY)
        return True

    async def start(self) -> None:
        """Begin a new recording session.

        Raises:
            StartError: If no source exists and re-acquisition fails.
        """
        if self.state in (CaptureState.recording, CaptureState.stopping):
            logger.warning("Recording already in progress")
            return

        if not self._source_is_live():
            self._context.source = None
            self._set_state(CaptureState.no_source)
            self._context.status.report(REACQUIRING)
            try:
                await self._acquire()
            except AcquisitionError as exc:
                self._context.status.report(REACQUIRE_FAILED)
                raise StartError(StartFailure.no_source) from exc

        ctx = self._context
        ctx.aggregator.reset()
        self._orchestrator.begin_cycle()

        stream = ChunkStream()
        try:
            recorder = self._platform.create_recorder(ctx.source, stream, self._interval_ms)
            recorder.start()
        except PlatformError as exc:
            logger.warning("Error starting recording: %s", exc.detail)
            stream.close()
            self._set_state(
                CaptureState.source_ready if self._source_is_live() else CaptureState.no_source
            )
            ctx.status.report(RECORDER_FAILED)
            return

        self._recorder = recorder
        self._stream = stream
        self._consumer = asyncio.create_task(self._consume(stream))
        self._set_state(CaptureState.recording)
        ctx.status.report(RECORDING)

    async def _consume(self, stream: ChunkStream) -> None:
        """Append every chunk of this session's stream, in delivery order."""
        async for chunk in stream:
            self._context.aggregator.append(chunk)
        logger.debug("Chunk stream drained")

    async def stop(self) -> str | None:
        """Stop recording and run the transcription stage on the payload.

        The capture state always leaves ``stopping``, even when the recorder
        fails to flush.

        Returns:
            The transcript, or None if no transcript was produced.
            Outside ``recording`` this is a no-op returning None.
        """
        if self.state is not CaptureState.recording:
            logger.debug("stop() ignored in state %s", self.state)
            return None

        ctx = self._context
        self._set_state(CaptureState.stopping)
        ctx.status.report(PROCESSING)

        recorder, stream, consumer = self._recorder, self._stream, self._consumer
        self._recorder = self._stream = self._consumer = None

        payload = None
        try:
            try:
                await recorder.stop()
            except PlatformError as exc:
                logger.warning("Recorder failed to flush: %s", exc.detail)
                stream.close()
            await consumer
            payload = ctx.aggregator.finalize(recorder.mime_type)
        except Exception:
            logger.exception("Failed to finalize the recording")
            ctx.status.report(STOP_FAILED)
        finally:
            stream.close()
            if not consumer.done():
                consumer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await consumer
            ctx.aggregator.reset()
            self._set_state(
                CaptureState.source_ready if self._source_is_live() else CaptureState.no_source
            )

        if payload is None:
            return None
        return await self._orchestrator.transcribe(payload)

    async def shutdown(self) -> None:
        """Stop any active recorder without processing and release the source."""
        recorder, stream, consumer = self._recorder, self._stream, self._consumer
        self._recorder = self._stream = self._consumer = None
        if recorder is not None:
            try:
                await recorder.stop()
            except PlatformError as exc:
                logger.warning("Recorder failed to stop: %s", exc.detail)
            except Exception:
                logger.exception("Unexpected error stopping the recorder")
        if stream is not None:
            stream.close()
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        self._context.aggregator.reset()
        self._acquirer.release()
        self._context.source = None
        self._set_state(CaptureState.no_source)
        self._context.status.report(RELEASED)
