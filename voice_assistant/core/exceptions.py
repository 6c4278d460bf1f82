"""
Voice assistant exception hierarchy.

All application-specific exceptions inherit from VoiceAssistantError so the
capture controller and pipeline orchestrator can recover them into status
messages in one place.
"""

from datetime import UTC, datetime
from enum import StrEnum


class AcquisitionFailure(StrEnum):
    """Why an audio source could not be obtained."""

    denied = "denied"
    not_found = "not_found"
    policy_blocked = "policy_blocked"
    unknown = "unknown"


class StartFailure(StrEnum):
    """Why a recording could not be started."""

    no_source = "no_source"


class StageFailure(StrEnum):
    """Why a pipeline stage did not produce a result."""

    transport = "transport"
    timeout = "timeout"
    non_success_response = "non_success_response"
    empty_input = "empty_input"
    no_candidate = "no_candidate"


class VoiceAssistantError(Exception):
    """Base exception for all voice assistant errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICE_ASSISTANT_ERROR",
    ) -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class PlatformError(VoiceAssistantError):
    """Raised by a media platform adapter.

    ``name`` follows the DOMException names a browser reports
    (``NotAllowedError``, ``NotFoundError``, ...), so every adapter speaks the
    same vocabulary to the Source Acquirer.
    """

    def __init__(self, name: str, message: str = "") -> None:
        self.name = name
        self.message = message
        super().__init__(
            detail=f"{name}: {message}" if message else name,
            code="PLATFORM_ERROR",
        )


class AcquisitionError(VoiceAssistantError):
    """Raised when the platform refuses or fails to provide an audio source."""

    def __init__(self, reason: AcquisitionFailure, detail: str = "") -> None:
        self.reason = reason
        super().__init__(
            detail=detail or f"Audio source acquisition failed: {reason}",
            code="ACQUISITION_ERROR",
        )


class StartError(VoiceAssistantError):
    """Raised when recording cannot start because no source is available."""

    def __init__(self, reason: StartFailure = StartFailure.no_source) -> None:
        self.reason = reason
        super().__init__(
            detail="Cannot start recording: no audio source available",
            code="START_ERROR",
        )


class StageError(VoiceAssistantError):
    """Raised by a remote service client when a stage call fails."""

    def __init__(
        self,
        kind: StageFailure,
        detail: str = "Stage failed",
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        super().__init__(detail=detail, code="STAGE_ERROR")
