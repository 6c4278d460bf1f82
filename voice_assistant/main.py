"""
Console driver for the voice assistant.

Run with: ``voice-assistant`` (or ``python -m voice_assistant``)

Commands are read from stdin: start, stop, refine, ask, show, quit.
Every status change is printed as it happens.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from voice_assistant.core.config import Settings, get_settings
from voice_assistant.core.exceptions import StartError
from voice_assistant.services.audio import MediaPlatform, SourceAcquirer, create_platform
from voice_assistant.services.capture import CaptureSessionController
from voice_assistant.services.llm import BaseLLM, create_llm
from voice_assistant.services.orchestrator import PipelineOrchestrator
from voice_assistant.services.session import SessionContext
from voice_assistant.services.transcription import BaseSTT, create_stt

logger = logging.getLogger(__name__)

HELP = "Commands: start, stop, refine, ask, show, quit"


@dataclass
class Assistant:
    """The wired-up components of one assistant instance."""

    context: SessionContext
    controller: CaptureSessionController
    orchestrator: PipelineOrchestrator
    stt: BaseSTT
    refiner: BaseLLM
    answerer: BaseLLM

    async def aclose(self) -> None:
        await self.controller.shutdown()
        for client in (self.stt, self.refiner, self.answerer):
            await client.aclose()


def build_assistant(
    settings: Settings,
    platform: MediaPlatform | None = None,
    stt: BaseSTT | None = None,
    refiner: BaseLLM | None = None,
    answerer: BaseLLM | None = None,
) -> Assistant:
    """Assemble context, clients, orchestrator and controller from settings."""
    platform = platform or create_platform("loopback", settings=settings)
    stt = stt or create_stt("remote", settings=settings)
    refiner = refiner or create_llm(settings.refinement_provider, settings=settings)
    answerer = answerer or create_llm("backend", settings=settings)

    context = SessionContext()
    orchestrator = PipelineOrchestrator(
        context,
        stt=stt,
        refiner=refiner,
        answerer=answerer,
        backend_url=settings.backend_url,
    )
    controller = CaptureSessionController(
        context,
        acquirer=SourceAcquirer(platform),
        platform=platform,
        orchestrator=orchestrator,
        chunk_interval_ms=settings.chunk_interval_ms,
    )
    return Assistant(context, controller, orchestrator, stt, refiner, answerer)


def _show(context: SessionContext) -> None:
    print(f"  Transcription: {context.transcript or '-'}")
    print(f"  Refined:       {context.refined_question or '-'}")
    print(f"  Answer:        {context.answer or '-'}")


async def dispatch(assistant: Assistant, command: str) -> bool:
    """Run one console command. Returns False when the loop should end."""
    controller = assistant.controller
    orchestrator = assistant.orchestrator

    if command in ("quit", "exit"):
        return False
    if command == "start":
        if not controller.can_start:
            print("  Recording is already active or audio is being processed.")
            return True
        try:
            await controller.start()
        except StartError:
            pass  # already reported on the status line
    elif command == "stop":
        if await controller.stop() is not None:
            _show(assistant.context)
    elif command == "refine":
        if await orchestrator.refine() is not None:
            _show(assistant.context)
    elif command == "ask":
        if await orchestrator.ask() is not None:
            _show(assistant.context)
    elif command == "show":
        _show(assistant.context)
    elif command:
        print(HELP)
    return True


async def run(settings: Settings) -> int:
    assistant = build_assistant(settings)
    assistant.context.status.subscribe(lambda message: print(f"[status] {message}"))
    print(assistant.context.status.message)
    print(HELP)

    try:
        await assistant.controller.initialize()
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not await dispatch(assistant, line.strip().lower()):
                break
    finally:
        await assistant.aclose()
    return 0


def main() -> int:
    """Entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Record tab/window audio, transcribe it, refine it and ask an AI"
    )
    parser.add_argument("--env-file", help="Read settings from this .env file")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit",
    )
    args = parser.parse_args()

    settings = Settings(_env_file=args.env_file) if args.env_file else get_settings()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.list_devices:
        from voice_assistant.services.audio.loopback import LoopbackPlatform

        for device in LoopbackPlatform.list_devices():
            print(f"{device['id']:>3}  {device['name']}  ({device['channels']}ch)")
        return 0

    try:
        return asyncio.run(run(settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
