"""Tab voice assistant: capture shared audio, transcribe, refine and answer."""

__version__ = "0.1.0"
