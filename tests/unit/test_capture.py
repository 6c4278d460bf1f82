"""Unit tests for CaptureSessionController.

Drives the recording lifecycle against the in-memory FakePlatform from
conftest: acquisition, start/stop idempotence, chunk ordering, payload
hand-off to the orchestrator and release on shutdown.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from voice_assistant.core.exceptions import PlatformError, StageFailure, StartError
from voice_assistant.core.models import CaptureState, Stage
from voice_assistant.services import capture, orchestrator as orch


async def _settle() -> None:
    """Let the chunk consumer task run."""
    for _ in range(3):
        await asyncio.sleep(0)


class TestInitialize:
    async def test_success(self, controller, context):
        assert await controller.initialize() is True
        assert controller.state is CaptureState.source_ready
        assert context.source is not None
        assert context.status.message == capture.SOURCE_READY

    @pytest.mark.parametrize(
        ("error", "reason"),
        [
            (PlatformError("NotAllowedError", "Permission denied"), "denied"),
            (
                PlatformError("NotAllowedError", "blocked by permissions policy"),
                "policy_blocked",
            ),
            (PlatformError("NotFoundError"), "not_found"),
            (RuntimeError("boom"), "unknown"),
        ],
    )
    async def test_failure_reports_reason(self, controller, platform, context, error, reason):
        platform.acquire_errors = [error]

        assert await controller.initialize() is False

        assert controller.state is CaptureState.no_source
        assert context.source is None
        assert context.status.message == capture.ACQUISITION_MESSAGES[reason]


class TestStart:
    async def test_start_from_ready(self, controller, platform, context):
        await controller.initialize()

        await controller.start()

        assert controller.state is CaptureState.recording
        assert platform.recorders[0].started is True
        assert platform.timeslices == [1000]
        assert context.status.message == capture.RECORDING
        assert controller.can_stop is True
        assert controller.can_start is False

    async def test_start_clears_previous_results(self, controller, context):
        await controller.initialize()
        context.transcript = "old"
        context.refined_question = "old?"
        context.answer = "old."
        context.failures[Stage.answer] = StageFailure.transport

        await controller.start()

        assert context.transcript == ""
        assert context.refined_question == ""
        assert context.answer == ""
        assert context.failures == {}

    async def test_start_while_recording_is_noop(self, controller, platform):
        await controller.initialize()
        await controller.start()

        await controller.start()

        assert len(platform.recorders) == 1
        assert controller.state is CaptureState.recording

    async def test_reacquires_missing_source(self, controller, platform, context):
        platform.acquire_errors = [PlatformError("NotAllowedError", "Permission denied")]
        await controller.initialize()
        assert controller.state is CaptureState.no_source

        await controller.start()

        assert controller.state is CaptureState.recording
        assert context.source is platform.sources[-1]

    async def test_reacquires_ended_source(self, controller, platform, context):
        """A source whose tracks all ended counts as absent."""
        await controller.initialize()
        context.source.stop()

        await controller.start()

        assert len(platform.sources) == 2
        assert controller.state is CaptureState.recording

    async def test_reacquire_failure_raises(self, controller, platform, context):
        platform.acquire_errors = [
            PlatformError("NotAllowedError", "Permission denied"),
            PlatformError("NotAllowedError", "Permission denied"),
        ]
        await controller.initialize()
        messages = []
        context.status.subscribe(messages.append)

        with pytest.raises(StartError):
            await controller.start()

        assert controller.state is CaptureState.no_source
        assert messages == [capture.REACQUIRING, capture.REACQUIRE_FAILED]
        assert platform.recorders == []

    async def test_recorder_failure_returns_to_ready(self, controller, platform, context):
        await controller.initialize()
        platform.recorder_error = PlatformError("InvalidStateError", "track ended")

        await controller.start()

        assert controller.state is CaptureState.source_ready
        assert context.status.message == capture.RECORDER_FAILED


class TestStop:
    async def test_stop_outside_recording_is_noop(self, controller, mock_stt):
        await controller.initialize()

        assert await controller.stop() is None

        assert controller.state is CaptureState.source_ready
        mock_stt.transcribe.assert_not_called()

    async def test_chunks_become_one_payload(self, controller, platform, context, mock_stt):
        """Chunks of 4000, 4000 and 2000 bytes yield one 10000-byte request."""
        await controller.initialize()
        await controller.start()
        recorder = platform.recorders[0]
        recorder.emit(b"\x01" * 4000)
        recorder.emit(b"\x02" * 4000)
        recorder.emit(b"\x03" * 2000)
        await _settle()

        transcript = await controller.stop()

        assert transcript == "hello"
        mock_stt.transcribe.assert_awaited_once()
        payload = mock_stt.transcribe.await_args.args[0]
        assert payload.size == 10000
        assert payload.data == b"\x01" * 4000 + b"\x02" * 4000 + b"\x03" * 2000
        assert payload.media_type == "audio/webm"
        assert context.transcript == "hello"
        assert controller.state is CaptureState.source_ready
        assert context.aggregator.chunk_count == 0

    async def test_final_flush_is_included(self, controller, platform, mock_stt):
        await controller.initialize()
        await controller.start()
        recorder = platform.recorders[0]
        recorder.emit(b"a" * 10)
        recorder.flush_on_stop = [b"b" * 5]

        await controller.stop()

        payload = mock_stt.transcribe.await_args.args[0]
        assert payload.data == b"a" * 10 + b"b" * 5
        assert recorder.stopped is True

    async def test_zero_size_chunks_are_ignored(self, controller, platform, mock_stt):
        await controller.initialize()
        await controller.start()
        platform.recorders[0].emit(b"")
        platform.recorders[0].emit(b"abc")

        await controller.stop()

        assert mock_stt.transcribe.await_args.args[0].size == 3

    async def test_empty_recording_skips_transcription(self, controller, context, mock_stt):
        await controller.initialize()
        await controller.start()

        assert await controller.stop() is None

        mock_stt.transcribe.assert_not_called()
        assert context.status.message == orch.NO_AUDIO
        assert context.failures[Stage.transcribe] is StageFailure.empty_input

    async def test_status_sequence(self, controller, platform, context):
        await controller.initialize()
        await controller.start()
        platform.recorders[0].emit(b"abc")
        messages = []
        context.status.subscribe(messages.append)

        await controller.stop()

        assert messages == [capture.PROCESSING, orch.TRANSCRIBING, orch.TRANSCRIPT_READY]

    async def test_second_session_has_fresh_buffer(self, controller, platform, mock_stt):
        await controller.initialize()
        await controller.start()
        platform.recorders[0].emit(b"first")
        await controller.stop()

        await controller.start()
        platform.recorders[1].emit(b"second")
        await controller.stop()

        assert mock_stt.transcribe.await_args.args[0].data == b"second"

    async def test_failed_flush_leaves_stopping(self, controller, platform, context, mock_stt):
        """An unexpected recorder failure still returns the controller to a startable state."""
        await controller.initialize()
        await controller.start()
        recorder = platform.recorders[0]
        recorder.emit(b"abc")
        recorder.stop = AsyncMock(side_effect=RuntimeError("flush failed"))

        assert await controller.stop() is None

        assert controller.state is CaptureState.source_ready
        assert controller.can_start is True
        assert context.status.message == capture.STOP_FAILED
        assert context.aggregator.chunk_count == 0
        mock_stt.transcribe.assert_not_called()

        await controller.start()
        assert controller.state is CaptureState.recording

    async def test_recorder_platform_error_keeps_buffered_audio(
        self, controller, platform, mock_stt
    ):
        await controller.initialize()
        await controller.start()
        recorder = platform.recorders[0]
        recorder.emit(b"abc")
        recorder.stop = AsyncMock(side_effect=PlatformError("InvalidStateError", "already inactive"))

        assert await controller.stop() == "hello"

        assert mock_stt.transcribe.await_args.args[0].data == b"abc"
        assert controller.state is CaptureState.source_ready

    async def test_stop_with_ended_source_returns_to_no_source(self, controller, platform, context):
        await controller.initialize()
        await controller.start()
        platform.recorders[0].emit(b"abc")
        context.source.stop()

        await controller.stop()

        assert controller.state is CaptureState.no_source


class TestShutdown:
    async def test_releases_source(self, controller, context, platform):
        await controller.initialize()
        source = context.source

        await controller.shutdown()

        assert source.is_live is False
        assert context.source is None
        assert controller.state is CaptureState.no_source
        assert context.status.message == capture.RELEASED

    async def test_during_recording_discards_chunks(self, controller, platform, context, mock_stt):
        await controller.initialize()
        await controller.start()
        platform.recorders[0].emit(b"abc")

        await controller.shutdown()

        assert platform.recorders[0].stopped is True
        assert context.aggregator.chunk_count == 0
        mock_stt.transcribe.assert_not_called()
