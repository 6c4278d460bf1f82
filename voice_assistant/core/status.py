"""
Status reporting for the presentation layer.

``StatusReporter`` holds the single human-readable status line plus the
per-stage activity states. The capture controller and the pipeline
orchestrator only ever write to it; listeners (a console, a UI) only read.
"""

import logging
from collections.abc import Callable

from voice_assistant.core.models import Stage, StageState

logger = logging.getLogger(__name__)

INITIAL_STATUS = 'Click "Start Recording" to begin capturing tab audio.'

StatusListener = Callable[[str], None]


class StatusReporter:
    """Last-write-wins status message with change notification.

    Args:
        initial: The message shown before any transition happened.
    """

    def __init__(self, initial: str = INITIAL_STATUS) -> None:
        if not initial or not initial.strip():
            raise ValueError("Status message must not be empty")
        self._message = initial
        self._stages: dict[Stage, StageState] = {stage: StageState.idle for stage in Stage}
        self._listeners: list[StatusListener] = []

    @property
    def message(self) -> str:
        return self._message

    def report(self, message: str) -> None:
        """Replace the status message and notify listeners.

        Raises:
            ValueError: If ``message`` is empty or whitespace.
        """
        if not message or not message.strip():
            raise ValueError("Status message must not be empty")
        self._message = message
        logger.info("Status: %s", message)
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Status listener failed (non-fatal)")

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- per-stage state --

    def stage_state(self, stage: Stage) -> StageState:
        return self._stages[stage]

    def set_stage(self, stage: Stage, state: StageState) -> None:
        logger.debug("Stage %s: %s -> %s", stage, self._stages[stage], state)
        self._stages[stage] = state

    def reset_stages(self) -> None:
        for stage in Stage:
            self._stages[stage] = StageState.idle

    def is_busy(self, stage: Stage | None = None) -> bool:
        """True if ``stage`` (or any stage when None) has a request in flight."""
        if stage is not None:
            return self._stages[stage] is StageState.in_flight
        return any(state is StageState.in_flight for state in self._stages.values())
